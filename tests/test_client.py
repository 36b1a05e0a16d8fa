"""Test module for the Python client"""

import logging
import os
import sys
import pytest
from blobstore import client
from blobstore.fileblobstore import FileBlobStore


def run_client(monkeypatch, *args):
    """Run the client with the given command line arguments and return its exit status."""
    # Manually change sys args to simulate command line arguments
    monkeypatch.setattr(sys, "argv", ["blobstore", *args])
    return client.main()


@pytest.fixture(name="store_path")
def init_store_path(tmp_path):
    """Path of a store root that does not exist yet."""
    return (tmp_path / ".git").as_posix()


@pytest.fixture(name="hi_file")
def init_hi_file(tmp_path):
    """A file containing exactly the 3 bytes 'hi\\n'."""
    path = tmp_path / "hi.txt"
    path.write_bytes(b"hi\n")
    return path.as_posix()


def test_init(monkeypatch, capsys, store_path):
    """Test creating a BlobStore through the client."""
    assert run_client(monkeypatch, "-store_path", store_path, "init") == 0
    assert os.path.isdir(os.path.join(store_path, "objects"))
    assert os.path.isdir(os.path.join(store_path, "refs"))
    with open(os.path.join(store_path, "HEAD"), "rb") as head_file:
        assert head_file.read() == b"ref: refs/heads/main\n"
    assert "Initialized empty store" in capsys.readouterr().out


def test_init_twice(monkeypatch, capsys, store_path):
    """Test initializing an existing store exits non-zero with a message."""
    assert run_client(monkeypatch, "-store_path", store_path, "init") == 0
    capsys.readouterr()
    assert run_client(monkeypatch, "-store_path", store_path, "init") == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "error:" in captured.err


def test_hash_object(monkeypatch, capsys, store_path, hi_file):
    """Test hash-object prints the address without touching the store."""
    assert run_client(monkeypatch, "-store_path", store_path, "hash-object", hi_file) == 0
    assert capsys.readouterr().out == "45b983be36b73c0788dc9cbcb76cbb80fc7bb057\n"
    assert not os.path.exists(store_path)


def test_hash_object_write(monkeypatch, capsys, store_path, hi_file):
    """Test hash-object -w stores the blob."""
    assert run_client(monkeypatch, "-store_path", store_path, "init") == 0
    capsys.readouterr()
    assert (
        run_client(monkeypatch, "-store_path", store_path, "hash-object", "-w", hi_file)
        == 0
    )
    address = capsys.readouterr().out.strip()
    assert address == "45b983be36b73c0788dc9cbcb76cbb80fc7bb057"
    entry_path = os.path.join(store_path, "objects", address[:2], address[2:])
    assert os.path.isfile(entry_path)


def test_hash_object_write_twice(monkeypatch, capsys, store_path, hi_file):
    """Test writing the same file twice succeeds both times."""
    run_client(monkeypatch, "-store_path", store_path, "init")
    for _ in range(2):
        assert (
            run_client(
                monkeypatch, "-store_path", store_path, "hash-object", "-w", hi_file
            )
            == 0
        )
    out = capsys.readouterr().out.splitlines()
    assert out[-2:] == ["45b983be36b73c0788dc9cbcb76cbb80fc7bb057"] * 2


def test_hash_object_missing_file(monkeypatch, capsys, store_path, tmp_path):
    """Test hash-object on a missing file exits non-zero with a message."""
    missing = (tmp_path / "missing.txt").as_posix()
    assert run_client(monkeypatch, "-store_path", store_path, "hash-object", missing) == 1
    assert "error:" in capsys.readouterr().err


def test_cat_file_pretty_print(monkeypatch, capsysbinary, store_path, hi_file):
    """Test cat-file -p writes the stored bytes unmodified."""
    run_client(monkeypatch, "-store_path", store_path, "init")
    run_client(monkeypatch, "-store_path", store_path, "hash-object", "-w", hi_file)
    capsysbinary.readouterr()
    assert (
        run_client(
            monkeypatch,
            "-store_path",
            store_path,
            "cat-file",
            "-p",
            "45b983be36b73c0788dc9cbcb76cbb80fc7bb057",
        )
        == 0
    )
    assert capsysbinary.readouterr().out == b"hi\n"


def test_cat_file_binary(monkeypatch, capsysbinary, store_path, tmp_path):
    """Test a file that is not valid text round trips through the client."""
    payload = bytes(range(256)) + b"\xff\xfe"
    binary_file = tmp_path / "binary.bin"
    binary_file.write_bytes(payload)
    run_client(monkeypatch, "-store_path", store_path, "init")
    capsysbinary.readouterr()
    run_client(
        monkeypatch, "-store_path", store_path, "hash-object", "-w", binary_file.as_posix()
    )
    address = capsysbinary.readouterr().out.decode("ascii").strip()
    assert run_client(monkeypatch, "-store_path", store_path, "cat-file", "-p", address) == 0
    assert capsysbinary.readouterr().out == payload


def test_cat_file_kind_and_size(monkeypatch, capsys, store_path, hi_file):
    """Test cat-file -t and -s print the kind and the payload size."""
    run_client(monkeypatch, "-store_path", store_path, "init")
    run_client(monkeypatch, "-store_path", store_path, "hash-object", "-w", hi_file)
    capsys.readouterr()
    address = "45b983be36b73c0788dc9cbcb76cbb80fc7bb057"
    assert run_client(monkeypatch, "-store_path", store_path, "cat-file", "-t", address) == 0
    assert capsys.readouterr().out == "blob\n"
    assert run_client(monkeypatch, "-store_path", store_path, "cat-file", "-s", address) == 0
    assert capsys.readouterr().out == "3\n"


def test_cat_file_invalid_address(monkeypatch, capsys, store_path):
    """Test cat-file -p with a short address fails on an empty store."""
    run_client(monkeypatch, "-store_path", store_path, "init")
    capsys.readouterr()
    assert run_client(monkeypatch, "-store_path", store_path, "cat-file", "-p", "abc") == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "abc" in captured.err


def test_cat_file_not_found(monkeypatch, capsys, store_path):
    """Test cat-file -p with an unknown address exits non-zero."""
    run_client(monkeypatch, "-store_path", store_path, "init")
    capsys.readouterr()
    address = "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391"
    assert run_client(monkeypatch, "-store_path", store_path, "cat-file", "-p", address) == 1
    assert address in capsys.readouterr().err


def test_cat_file_unsupported_kind(monkeypatch, capsys, store_path, write_raw_object):
    """Test cat-file -p on a tree object exits non-zero even though it decompresses."""
    run_client(monkeypatch, "-store_path", store_path, "init")
    capsys.readouterr()
    store = FileBlobStore(FileBlobStore.load_properties(store_path))
    address = write_raw_object(store, b"tree 4\0data")
    assert run_client(monkeypatch, "-store_path", store_path, "cat-file", "-p", address) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "unsupported kind" in captured.err


def test_cat_file_requires_mode(monkeypatch, store_path):
    """Test cat-file without -p, -t or -s is a usage error."""
    with pytest.raises(SystemExit) as excinfo:
        run_client(
            monkeypatch,
            "-store_path",
            store_path,
            "cat-file",
            "45b983be36b73c0788dc9cbcb76cbb80fc7bb057",
        )
    assert excinfo.value.code == 2


def test_missing_command(monkeypatch):
    """Test running the client without a command is a usage error."""
    with pytest.raises(SystemExit) as excinfo:
        run_client(monkeypatch)
    assert excinfo.value.code == 2


def test_invalid_loglevel(monkeypatch, store_path, hi_file):
    """Test an unknown logging level is a usage error."""
    with pytest.raises(SystemExit) as excinfo:
        run_client(
            monkeypatch, "-store_path", store_path, "-loglevel", "bogus", "hash-object", hi_file
        )
    assert excinfo.value.code == 2


def test_get_logging_level():
    """Test the client is silent by default and '-loglevel' is case insensitive."""
    parser = client.BlobStoreParser()
    default_args = parser.get_parser_args(["hash-object", "hi.txt"])
    assert parser.get_logging_level(default_args) > logging.CRITICAL
    debug_args = parser.get_parser_args(["-loglevel", "debug", "hash-object", "hi.txt"])
    assert parser.get_logging_level(debug_args) == logging.DEBUG


def test_failure_reported_once(monkeypatch, capsys, store_path):
    """Test a failing command at the default logging level writes a single 'error:'
    line to stderr, the store's log records stay silent."""
    run_client(monkeypatch, "-store_path", store_path, "init")
    capsys.readouterr()
    parser = client.BlobStoreParser()
    default_level = parser.get_logging_level(parser.get_parser_args(["init"]))
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(default_level)
    logging.getLogger().addHandler(stderr_handler)
    try:
        address = "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391"
        assert (
            run_client(monkeypatch, "-store_path", store_path, "cat-file", "-p", address)
            == 1
        )
    finally:
        logging.getLogger().removeHandler(stderr_handler)
    err_lines = capsys.readouterr().err.splitlines()
    assert len(err_lines) == 1
    assert err_lines[0].startswith("error:")


@pytest.fixture(name="bad_level_store_path")
def init_bad_level_store_path(store_path):
    """Path of a store whose blobstore.yaml holds an out-of-range compression level."""
    os.makedirs(store_path)
    with open(os.path.join(store_path, "blobstore.yaml"), "w", encoding="utf-8") as yaml_file:
        yaml_file.write("store_compression_level: 12\n")
    return store_path


def test_hash_object_ignores_store_config(monkeypatch, capsys, bad_level_store_path, hi_file):
    """Test hash-object without -w does not read the store's configuration."""
    assert (
        run_client(monkeypatch, "-store_path", bad_level_store_path, "hash-object", hi_file)
        == 0
    )
    assert capsys.readouterr().out == "45b983be36b73c0788dc9cbcb76cbb80fc7bb057\n"


def test_hash_object_write_bad_store_config(
    monkeypatch, capsys, bad_level_store_path, hi_file
):
    """Test hash-object -w on a store with an invalid level exits non-zero."""
    assert (
        run_client(
            monkeypatch, "-store_path", bad_level_store_path, "hash-object", "-w", hi_file
        )
        == 1
    )
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "error:" in captured.err


def test_cat_file_bad_store_config(monkeypatch, capsys, bad_level_store_path):
    """Test cat-file on a store with an invalid level exits non-zero."""
    address = "45b983be36b73c0788dc9cbcb76cbb80fc7bb057"
    assert (
        run_client(monkeypatch, "-store_path", bad_level_store_path, "cat-file", "-p", address)
        == 1
    )
    assert "error:" in capsys.readouterr().err


def test_cat_file_empty_store_config(monkeypatch, capsys, store_path):
    """Test cat-file on a store with an empty blobstore.yaml exits non-zero."""
    os.makedirs(store_path)
    with open(os.path.join(store_path, "blobstore.yaml"), "w", encoding="utf-8"):
        pass
    address = "45b983be36b73c0788dc9cbcb76cbb80fc7bb057"
    assert run_client(monkeypatch, "-store_path", store_path, "cat-file", "-p", address) == 1
    assert "blobstore.yaml" in capsys.readouterr().err

"""Pytest overall configuration file for fixtures"""

import hashlib
import os
import zlib
import pytest
from blobstore.fileblobstore import FileBlobStore


@pytest.fixture(name="props")
def init_props(tmp_path):
    """Properties to initialize BlobStore."""
    directory = tmp_path / "repo" / ".git"
    # Note, objects generated via tests are placed in a temporary folder
    # with the 'directory' parameter above appended
    properties = {
        "store_path": directory.as_posix(),
        "store_compression_level": -1,
    }
    return properties


@pytest.fixture(name="store")
def init_store(props):
    """Create and initialize a FileBlobStore instance for all tests."""
    store = FileBlobStore(props)
    store.initialize()
    return store


@pytest.fixture(name="blobs")
def init_blobs():
    """Shared test harness data: blob payloads and the addresses git assigns them."""
    test_blobs = {
        "empty": {
            "payload": b"",
            "address": "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391",
        },
        "hi": {
            "payload": b"hi\n",
            "address": "45b983be36b73c0788dc9cbcb76cbb80fc7bb057",
        },
        "hello_world": {
            "payload": b"hello world\n",
            "address": "3b18e512dba79e4c8300dd08aeb37f8e728b8dad",
        },
        "test_content": {
            "payload": b"test content\n",
            "address": "d670460b4b4aece5915caf5c68d12f560a9fe3e4",
        },
    }
    return test_blobs


@pytest.fixture(name="write_raw_object")
def init_write_raw_object():
    """Write a hand-crafted entry into a store, bypassing `put`. The entry is placed at
    the location of the SHA-1 of `raw`; `compressed` overrides the bytes written."""

    def write_raw_object(store, raw, compressed=None):
        address = hashlib.sha1(raw).hexdigest()
        # pylint: disable=W0212
        entry_path = store._build_path(address)
        os.makedirs(os.path.dirname(entry_path), exist_ok=True)
        with open(entry_path, "wb") as entry_file:
            entry_file.write(zlib.compress(raw) if compressed is None else compressed)
        return address

    return write_raw_object

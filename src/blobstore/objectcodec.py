"""Object codec for BlobStore.

An object is framed as ``b"<kind> <size>\\0<payload>"``. That canonical byte sequence is
both the input of the SHA-1 content address and the content that gets zlib-compressed
onto disk. Decoding runs the reverse path over a decompressing stream and rejects any
object whose header and payload length disagree.
"""

import enum
import hashlib
import logging
import os
import re
import zlib
from blobstore import blobstore_config
from blobstore.fileblobstore_exceptions import (
    CorruptObject,
    MalformedHeader,
    TrailingData,
    TruncatedObject,
    UnsupportedKind,
)


class ObjectKind(enum.Enum):
    """Object kinds that fit the header's tag slot. Only `BLOB` is supported by the
    store; the other tags are reserved so the framing does not change when they are."""

    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"
    TAG = "tag"


SUPPORTED_KINDS = (ObjectKind.BLOB,)

_ADDRESS_PATTERN = re.compile(r"[0-9a-fA-F]{%d}" % blobstore_config.ADDRESS_LENGTH)
_SIZE_PATTERN = re.compile(rb"[0-9]+")


def encode(kind, payload):
    """Build the canonical byte sequence of an object.

    :param ObjectKind kind: Kind of the object.
    :param bytes payload: Raw object content (bytes, bytearray or memoryview).

    :raises TypeError: If `payload` is not bytes-like.

    :return: ``b"<kind> <len(payload)>\\0" + payload``
    :rtype: bytes
    """
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        exception_string = (
            "ObjectCodec - encode: payload must be bytes-like."
            + f" Arg Type: {type(payload)}."
        )
        logging.error(exception_string)
        raise TypeError(exception_string)
    payload = bytes(payload)
    header = f"{kind.value} {len(payload)}\0".encode("ascii")
    return header + payload


def address_of(canonical_bytes):
    """Return the content address (40 lowercase hex digits) of a canonical byte sequence."""
    return hashlib.new(blobstore_config.ALGORITHM, canonical_bytes).hexdigest()


def compress(canonical_bytes, level=blobstore_config.COMPRESSION_LEVEL):
    """Compress a canonical byte sequence into a zlib stream (with its adler32 trailer).

    :param bytes canonical_bytes: Output of `encode`.
    :param int level: zlib compression level, -1 for zlib's default.

    :return: Compressed bytes.
    :rtype: bytes
    """
    return zlib.compress(canonical_bytes, level)


def is_valid_address(address):
    """Check whether `address` is a string of exactly 40 hex characters."""
    return isinstance(address, str) and bool(_ADDRESS_PATTERN.fullmatch(address))


def parse_header(header, name=None):
    """Parse a header buffer (without its trailing NUL) into a kind and a declared size.

    :param bytes header: Bytes preceding the first NUL of a decompressed object.
    :param str name: Address or path used in error messages.

    :raises MalformedHeader: If the header is not valid text, lacks a space or has a
        size that is not a non-negative decimal integer.
    :raises UnsupportedKind: If the header names a kind other than a supported one.

    :return: tuple - (ObjectKind, declared_size)
    """
    try:
        header.decode("utf-8")
    except UnicodeDecodeError as err:
        exception_string = f"ObjectCodec - parse_header: header of {name} is not valid text."
        logging.error(exception_string)
        raise MalformedHeader(exception_string) from err

    kind_bytes, space, size_bytes = header.partition(b" ")
    if not space:
        exception_string = (
            f"ObjectCodec - parse_header: header of {name} has no space delimiter:"
            + f" {header!r}"
        )
        logging.error(exception_string)
        raise MalformedHeader(exception_string)

    kind_name = kind_bytes.decode("utf-8")
    kind = next((k for k in SUPPORTED_KINDS if k.value == kind_name), None)
    if kind is None:
        exception_string = (
            f"ObjectCodec - parse_header: object {name} has unsupported kind: {kind_name}"
        )
        logging.error(exception_string)
        raise UnsupportedKind(exception_string, kind=kind_name)

    if not _SIZE_PATTERN.fullmatch(size_bytes):
        exception_string = (
            f"ObjectCodec - parse_header: header of {name} has a non-numeric size:"
            + f" {size_bytes!r}"
        )
        logging.error(exception_string)
        raise MalformedHeader(exception_string)

    return kind, int(size_bytes)


class ObjectDecoder:
    """Decode one object from a readable stream of decompressed bytes.

    Decoding runs three phases in order, each with its own error kinds:

    - read header: bytes up to the first NUL (`MalformedHeader`, `UnsupportedKind`)
    - read payload: exactly the declared number of bytes (`TruncatedObject`)
    - verify end: nothing may follow the payload (`TrailingData`)

    :param reader: Object with a ``read(size)`` method returning bytes.
    :param str name: Address or path used in error messages.
    """

    READ_HEADER = "read_header"
    READ_PAYLOAD = "read_payload"
    VERIFY_EOF = "verify_eof"
    DONE = "done"

    chunk_size = 65536

    def __init__(self, reader, name=None):
        self._reader = reader
        self.name = name
        self.state = self.READ_HEADER
        self.kind = None
        self.declared_size = None

    def decode(self):
        """Run every phase and return ``(kind, payload)``."""
        self._read_header()
        payload = self._read_payload()
        self._verify_eof()
        return self.kind, payload

    def _read_header(self):
        header = bytearray()
        while True:
            byte = self._reader.read(1)
            if not byte:
                exception_string = (
                    f"ObjectDecoder - _read_header: object {self.name} ended before"
                    + " the header's NUL delimiter."
                )
                logging.error(exception_string)
                raise MalformedHeader(exception_string)
            if byte == b"\0":
                break
            header += byte
        self.kind, self.declared_size = parse_header(bytes(header), self.name)
        self.state = self.READ_PAYLOAD

    def _read_payload(self):
        payload = bytearray()
        while len(payload) < self.declared_size:
            data = self._reader.read(
                min(self.chunk_size, self.declared_size - len(payload))
            )
            if not data:
                exception_string = (
                    f"ObjectDecoder - _read_payload: object {self.name} declares"
                    + f" {self.declared_size} bytes but only {len(payload)} are present."
                )
                logging.error(exception_string)
                raise TruncatedObject(exception_string)
            payload += data
        self.state = self.VERIFY_EOF
        return bytes(payload)

    def _verify_eof(self):
        if self._reader.read(1):
            exception_string = (
                f"ObjectDecoder - _verify_eof: object {self.name} has data after its"
                + f" declared {self.declared_size} payload bytes."
            )
            logging.error(exception_string)
            raise TrailingData(exception_string)
        self.state = self.DONE


def decode_stream(reader, name=None):
    """Decode a stream of decompressed object bytes into ``(kind, payload)``.

    :param reader: Object with a ``read(size)`` method returning bytes.
    :param str name: Address or path used in error messages.

    :return: tuple - (ObjectKind, bytes)
    """
    return ObjectDecoder(reader, name).decode()


class ZlibStream(object):
    """Readable view of the decompressed contents of a zlib-compressed file object.

    Compressed data is pulled from `obj` in blocks the size of the underlying file's
    block size (8192 bytes when unknown) and decompressed on demand, so a reader only
    holds what it has asked for. Malformed input surfaces as `CorruptObject` from
    `read`. Closing the stream is left to whoever opened `obj`.
    """

    def __init__(self, obj, name=None):
        if not hasattr(obj, "read"):
            raise ValueError("Object must be a readable object")

        try:
            file_stat = os.stat(obj.name)
            buffer_size = file_stat.st_blksize
        except (AttributeError, TypeError, OSError):
            buffer_size = 8192

        self._obj = obj
        self._buffer_size = buffer_size
        self._decompressor = zlib.decompressobj()
        self._buffer = bytearray()
        self.name = name if name is not None else getattr(obj, "name", None)

    def read(self, size=-1):
        """Return up to `size` decompressed bytes (all remaining when negative).
        Returns ``b""`` once the compressed stream has been fully consumed."""
        while size < 0 or len(self._buffer) < size:
            if not self._fill():
                break
        if size < 0 or size >= len(self._buffer):
            data = bytes(self._buffer)
            self._buffer.clear()
        else:
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
        return data

    def _fill(self):
        """Decompress another block into the buffer. Returns False at the end of the
        zlib stream."""
        if self._decompressor.eof:
            return False

        chunk = self._obj.read(self._buffer_size)
        if not chunk:
            self._raise_corrupt("compressed stream ended before its end marker")
        try:
            self._buffer += self._decompressor.decompress(chunk)
        except zlib.error as err:
            self._raise_corrupt(f"zlib error: {err}", err)

        if self._decompressor.eof and (
            self._decompressor.unused_data or self._obj.read(1)
        ):
            self._raise_corrupt("unexpected bytes after the compressed stream")
        return True

    def _raise_corrupt(self, reason, err=None):
        exception_string = f"ZlibStream - read: object {self.name} is corrupt, {reason}."
        logging.error(exception_string)
        raise CorruptObject(exception_string) from err

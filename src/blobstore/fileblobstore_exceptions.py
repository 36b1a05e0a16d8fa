"""FileBlobStore custom exception module."""


class BlobStoreError(Exception):
    """Base exception for every error raised by a BlobStore, so a caller can handle
    all store failures in one place."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors


class InvalidAddress(BlobStoreError):
    """Custom exception thrown when a supplied address is not exactly 40 hex characters.
    Raised before any filesystem access is attempted."""


class ObjectNotFound(BlobStoreError):
    """Custom exception thrown when no entry exists at the location derived from
    an address."""


class CorruptObject(BlobStoreError):
    """Custom exception thrown when a stored entry fails to decompress, fails its zlib
    checksum, ends before the zlib end marker or carries bytes after it."""


class MalformedHeader(BlobStoreError):
    """Custom exception thrown when a decompressed object's header is missing its NUL
    delimiter, its space delimiter, is not valid text or has a non-numeric size."""


class UnsupportedKind(BlobStoreError):
    """Custom exception thrown when an object header (or a caller) names a kind other
    than the ones this store supports."""

    def __init__(self, message, kind=None, errors=None):
        super().__init__(message, errors)
        self.kind = kind


class TruncatedObject(BlobStoreError):
    """Custom exception thrown when fewer payload bytes are available than the object
    header declares."""


class TrailingData(BlobStoreError):
    """Custom exception thrown when bytes follow the payload length declared in the
    object header."""


class StoreWriteError(BlobStoreError):
    """Custom exception thrown when the filesystem refuses to create a store directory
    or file (permissions, disk full, a file where a directory is expected)."""


class AlreadyInitialized(BlobStoreError):
    """Custom exception thrown when initializing a store at a root that already holds
    a store."""


class StoreReadError(BlobStoreError):
    """Custom exception thrown when an existing entry cannot be opened for reading
    (permissions, I/O errors)."""


class StoreConfigError(BlobStoreError):
    """Custom exception thrown when a store's 'blobstore.yaml' cannot be read, cannot be
    parsed or does not hold the expected properties."""

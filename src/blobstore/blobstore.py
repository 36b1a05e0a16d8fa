"""BlobStore Interface"""
from abc import ABC, abstractmethod
from collections import namedtuple
import importlib.metadata
import importlib.util


class BlobStore(ABC):
    """BlobStore is a content-addressable object store that utilizes an object's
    content address (SHA-1 hex digest of its canonical encoding) to address files."""

    @staticmethod
    def version():
        """Return the version number"""
        __version__ = importlib.metadata.version("blobstore")
        return __version__

    @abstractmethod
    def initialize(self):
        """Create an empty store at the store root. The store root receives an `objects`
        directory holding the buckets, a `refs` directory and a `HEAD` pointer file
        containing exactly ``ref: refs/heads/main\\n``.

        :raises AlreadyInitialized: If the store root already holds a store.
        :raises StoreWriteError: If a directory or file cannot be created.
        """
        raise NotImplementedError()

    @abstractmethod
    def put(self, kind, payload):
        """Store an object and return its content address. The object is encoded as
        ``<kind> <size>\\0<payload>``, addressed by the SHA-1 hex digest of that encoding,
        compressed with zlib and written as a whole file to
        ``objects/<first 2 hex chars>/<remaining 38 hex chars>``.

        Storing an object that is already present succeeds and returns the same address;
        content addressing guarantees the existing entry holds identical content.

        :param ObjectKind kind: Kind of the object, must be a supported kind.
        :param bytes payload: Raw object content, any byte sequence.

        :raises UnsupportedKind: If `kind` is not supported by the store.
        :raises StoreWriteError: If the bucket or entry cannot be written.

        :return: str - 40 lowercase hex character content address.
        """
        raise NotImplementedError()

    @abstractmethod
    def get(self, address):
        """Retrieve and decode an object by its content address. The address is validated
        before the filesystem is touched, the entry is decompressed as a stream and its
        header and payload length are checked strictly.

        :param str address: 40 hex character content address.

        :raises InvalidAddress: If `address` is not exactly 40 hex characters.
        :raises ObjectNotFound: If no entry exists for `address`.
        :raises CorruptObject: If the entry is not a valid zlib stream.
        :raises MalformedHeader: If the decompressed header cannot be parsed.
        :raises UnsupportedKind: If the header names an unsupported kind.
        :raises TruncatedObject: If fewer payload bytes exist than declared.
        :raises TrailingData: If bytes follow the declared payload.
        :raises StoreReadError: If the entry exists but cannot be opened.

        :return: StoredObject - (kind, payload)
        """
        raise NotImplementedError()

    @abstractmethod
    def exists(self, address):
        """Check whether an entry exists for a content address.

        :param str address: 40 hex character content address.

        :raises InvalidAddress: If `address` is not exactly 40 hex characters.

        :return: bool - `True` if the entry exists.
        """
        raise NotImplementedError()


class BlobStoreFactory:
    """A factory class for creating `BlobStore`-like objects.

    The `BlobStoreFactory` class serves as a factory for creating `BlobStore`-like objects,
    which are classes that implement the 'BlobStore' abstract methods.

    This factory class provides a method to retrieve a `BlobStore` object based on a given module
    (e.g., "blobstore.fileblobstore") and class name (e.g., "FileBlobStore").
    """

    @staticmethod
    def get_blobstore(module_name, class_name, properties=None):
        """Get a `BlobStore`-like object based on the specified `module_name` and `class_name`.

        :param str module_name: Name of the package (e.g., "blobstore.fileblobstore").
        :param str class_name: Name of the class in the given module (e.g., "FileBlobStore").
        :param dict properties: Desired BlobStore properties. Example Properties Dictionary:
            {
                "store_path": ".git",
                "store_compression_level": -1,
            }

        :return: BlobStore - A blob store object based on the given `module_name` and
            `class_name`.

        :raises ModuleNotFoundError: If the module is not found.
        :raises AttributeError: If the class does not exist within the module.
        """
        # Validate module
        if importlib.util.find_spec(module_name) is None:
            raise ModuleNotFoundError(f"No module found for '{module_name}'")

        # Get BlobStore
        imported_module = importlib.import_module(module_name)

        # If class is not part of module, raise error
        if hasattr(imported_module, class_name):
            blobstore_class = getattr(imported_module, class_name)
            return blobstore_class(properties=properties)
        raise AttributeError(
            f"Class name '{class_name}' is not an attribute of module '{module_name}'"
        )


class StoredObject(namedtuple("StoredObject", ["kind", "payload"])):
    """Represents an object decoded from a BlobStore.

    :param ObjectKind kind: Kind named in the object's header.
    :param bytes payload: The object's content, exactly as many bytes as the header declares.
    """

    @property
    def size(self):
        """Number of payload bytes."""
        return len(self.payload)

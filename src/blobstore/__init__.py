"""BlobStore is a content-addressable object store that keeps file content on disk
under a hash derived from its bytes, using the object layout of git's blob layer.

Some properties:

- Objects are immutable and never change; storing the same content twice is a no-op
- Objects are named using the SHA-1 hex digest of their canonical encoding
    ``<kind> <size>\\0<payload>`` (thus, a content address)
- Objects are zlib-compressed and sharded into ``objects/<2 hex chars>/<38 hex chars>``
- Objects are decoded strictly: the header's declared size must match the payload exactly
"""

from blobstore.blobstore import BlobStore, BlobStoreFactory, StoredObject
from blobstore.objectcodec import ObjectKind

__all__ = ("BlobStore", "BlobStoreFactory", "StoredObject", "ObjectKind")
__version__ = "1.0.0"

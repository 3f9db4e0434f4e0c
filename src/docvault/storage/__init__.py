"""Blob storage: payloads addressed by opaque identifiers."""

from .base import (
    BlobNotFoundError,
    BlobReader,
    BlobStore,
    BlobStoreError,
    InvalidBlobIdError,
    StoredBlob,
    validate_blob_id,
)
from .backends import GridFSBlobStore, MemoryBlobStore
from .limits import capped, iter_file

__all__ = [
    "BlobNotFoundError",
    "BlobReader",
    "BlobStore",
    "BlobStoreError",
    "InvalidBlobIdError",
    "StoredBlob",
    "validate_blob_id",
    "GridFSBlobStore",
    "MemoryBlobStore",
    "capped",
    "iter_file",
]

from .gridfs import GridFSBlobStore
from .memory import MemoryBlobStore

__all__ = ["GridFSBlobStore", "MemoryBlobStore"]

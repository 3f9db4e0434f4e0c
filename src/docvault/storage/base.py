"""Blob store contract.

A blob store keeps opaque payloads addressed by an identifier it generates
itself. The identifier is only known once the whole payload has been written.
Identifiers are BSON ObjectIds rendered as 24-character hex strings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator

from bson import ObjectId

DEFAULT_CHUNK_SIZE = 255 * 1024  # GridFS default


class BlobStoreError(Exception):
    """A blob store operation failed."""


class BlobNotFoundError(BlobStoreError):
    """No blob exists under the given identifier."""


class InvalidBlobIdError(BlobStoreError, ValueError):
    """The identifier is not a well-formed blob id."""


@dataclass(frozen=True)
class StoredBlob:
    blob_id: str
    size: int


@dataclass
class BlobReader:
    """An opened blob; iterate ``chunks`` to stream the payload once."""

    blob_id: str
    filename: str
    length: int
    chunks: AsyncIterator[bytes]

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.chunks


def validate_blob_id(raw: str) -> str:
    if not isinstance(raw, str) or not ObjectId.is_valid(raw):
        raise InvalidBlobIdError(f"invalid blob id: {raw!r}")
    return str(ObjectId(raw))


class BlobStore(ABC):
    """Chunked payload storage used by the document service."""

    @abstractmethod
    async def write(self, filename: str, chunks: AsyncIterable[bytes]) -> StoredBlob:
        """Consume ``chunks`` into a new blob and return its id and size.

        If consuming or writing fails, the partial blob is discarded and the
        error propagates: exceptions raised by ``chunks`` unchanged, store
        failures as :class:`BlobStoreError`.
        """

    @abstractmethod
    async def open(self, blob_id: str) -> BlobReader:
        """Open a blob for reading; raises :class:`BlobNotFoundError`."""

    @abstractmethod
    async def delete(self, blob_id: str) -> None:
        """Delete a blob; raises :class:`BlobNotFoundError`."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "BlobStoreError",
    "BlobNotFoundError",
    "InvalidBlobIdError",
    "StoredBlob",
    "BlobReader",
    "BlobStore",
    "validate_blob_id",
]

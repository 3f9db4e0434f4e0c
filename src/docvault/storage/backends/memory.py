"""In-process blob store.

Holds payloads in a dict; useful for tests and for running the service
without MongoDB (``STORAGE_BACKEND=memory``). Contents are lost on restart.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterable, AsyncIterator

from bson import ObjectId

from ..base import (
    DEFAULT_CHUNK_SIZE,
    BlobNotFoundError,
    BlobReader,
    BlobStore,
    StoredBlob,
    validate_blob_id,
)


@dataclass
class _Blob:
    filename: str
    data: bytes
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MemoryBlobStore(BlobStore):
    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size
        self._blobs: dict[str, _Blob] = {}
        self._lock = asyncio.Lock()

    async def write(self, filename: str, chunks: AsyncIterable[bytes]) -> StoredBlob:
        # Nothing is visible until the stream is fully consumed.
        buf = bytearray()
        async for chunk in chunks:
            buf.extend(chunk)
        blob_id = str(ObjectId())
        async with self._lock:
            self._blobs[blob_id] = _Blob(filename=filename, data=bytes(buf))
        return StoredBlob(blob_id=blob_id, size=len(buf))

    async def open(self, blob_id: str) -> BlobReader:
        blob_id = validate_blob_id(blob_id)
        async with self._lock:
            blob = self._blobs.get(blob_id)
        if blob is None:
            raise BlobNotFoundError(f"blob not found: {blob_id}")
        return BlobReader(
            blob_id=blob_id,
            filename=blob.filename,
            length=len(blob.data),
            chunks=self._iter_chunks(blob.data),
        )

    async def _iter_chunks(self, data: bytes) -> AsyncIterator[bytes]:
        for start in range(0, len(data), self.chunk_size):
            yield data[start : start + self.chunk_size]

    async def delete(self, blob_id: str) -> None:
        blob_id = validate_blob_id(blob_id)
        async with self._lock:
            if self._blobs.pop(blob_id, None) is None:
                raise BlobNotFoundError(f"blob not found: {blob_id}")

    async def exists(self, blob_id: str) -> bool:
        async with self._lock:
            return validate_blob_id(blob_id) in self._blobs

    async def clear(self) -> None:
        async with self._lock:
            self._blobs.clear()

    def __len__(self) -> int:
        return len(self._blobs)

"""GridFS blob store on top of Motor.

Payloads are written chunk by chunk through ``open_upload_stream`` so memory
use stays bounded by the chunk size regardless of the upload size.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator

from bson import ObjectId
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket
from pymongo.errors import PyMongoError

from ..base import (
    DEFAULT_CHUNK_SIZE,
    BlobNotFoundError,
    BlobReader,
    BlobStore,
    BlobStoreError,
    StoredBlob,
    validate_blob_id,
)

logger = logging.getLogger(__name__)


class GridFSBlobStore(BlobStore):
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        *,
        bucket_name: str = "fs",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        bucket: AsyncIOMotorGridFSBucket | None = None,
    ):
        self.db = db
        self.bucket_name = bucket_name
        self.chunk_size = chunk_size
        self._bucket = bucket or AsyncIOMotorGridFSBucket(
            db, bucket_name=bucket_name, chunk_size_bytes=chunk_size
        )

    async def write(self, filename: str, chunks: AsyncIterable[bytes]) -> StoredBlob:
        try:
            grid_in = self._bucket.open_upload_stream(filename)
        except PyMongoError as exc:
            raise BlobStoreError("could not open upload stream") from exc

        size = 0
        try:
            async for chunk in chunks:
                await grid_in.write(chunk)
                size += len(chunk)
            await grid_in.close()
        except PyMongoError as exc:
            await self._abort(grid_in)
            raise BlobStoreError("gridfs write failed") from exc
        except BaseException:
            # source stream failed or the request was cancelled
            await self._abort(grid_in)
            raise

        return StoredBlob(blob_id=str(grid_in._id), size=size)

    async def _abort(self, grid_in) -> None:
        try:
            await grid_in.abort()
        except PyMongoError:
            logger.warning("Failed to abort partial GridFS upload %s", grid_in._id, exc_info=True)

    async def open(self, blob_id: str) -> BlobReader:
        oid = ObjectId(validate_blob_id(blob_id))
        try:
            grid_out = await self._bucket.open_download_stream(oid)
        except NoFile as exc:
            raise BlobNotFoundError(f"blob not found: {blob_id}") from exc
        except PyMongoError as exc:
            raise BlobStoreError("gridfs read failed") from exc
        return BlobReader(
            blob_id=str(oid),
            filename=grid_out.filename or "",
            length=grid_out.length,
            chunks=self._iter_chunks(grid_out),
        )

    async def _iter_chunks(self, grid_out) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await grid_out.readchunk()
                if not chunk:
                    break
                yield chunk
        except PyMongoError as exc:
            raise BlobStoreError("gridfs read failed") from exc

    async def delete(self, blob_id: str) -> None:
        oid = ObjectId(validate_blob_id(blob_id))
        try:
            await self._bucket.delete(oid)
        except NoFile as exc:
            raise BlobNotFoundError(f"blob not found: {blob_id}") from exc
        except PyMongoError as exc:
            raise BlobStoreError("gridfs delete failed") from exc

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except PyMongoError:
            return False

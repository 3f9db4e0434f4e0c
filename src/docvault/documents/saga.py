"""Two-step upload: blob first, then metadata, with one compensating delete.

States::

    BLOB_PENDING -> BLOB_WRITTEN -> META_WRITTEN
                    BLOB_WRITTEN -> META_FAILED -> COMPENSATING -> COMPENSATED

A failed blob write never reaches BLOB_WRITTEN, so there is nothing to undo.
If the compensating delete itself fails the saga stays in COMPENSATING and the
failure is only logged; the metadata error is what the caller sees.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import AsyncIterable, Dict, FrozenSet, Optional

from docvault.db.nosql.repository import DocumentRepository
from docvault.storage.base import BlobNotFoundError, BlobStore, StoredBlob

from .models import DocumentRecord

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    BLOB_PENDING = "blob_pending"
    BLOB_WRITTEN = "blob_written"
    META_WRITTEN = "meta_written"
    META_FAILED = "meta_failed"
    COMPENSATING = "compensating"
    COMPENSATED = "compensated"


TRANSITIONS: Dict[UploadState, FrozenSet[UploadState]] = {
    UploadState.BLOB_PENDING: frozenset({UploadState.BLOB_WRITTEN}),
    UploadState.BLOB_WRITTEN: frozenset({UploadState.META_WRITTEN, UploadState.META_FAILED}),
    UploadState.META_FAILED: frozenset({UploadState.COMPENSATING}),
    UploadState.COMPENSATING: frozenset({UploadState.COMPENSATED}),
    UploadState.META_WRITTEN: frozenset(),
    UploadState.COMPENSATED: frozenset(),
}


class UploadSaga:
    def __init__(self, blobs: BlobStore, repo: DocumentRepository):
        self.blobs = blobs
        self.repo = repo
        self.state = UploadState.BLOB_PENDING
        self.blob: Optional[StoredBlob] = None
        self.record: Optional[DocumentRecord] = None

    def _advance(self, target: UploadState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal upload transition {self.state.value} -> {target.value}")
        logger.debug("upload saga %s -> %s", self.state.value, target.value)
        self.state = target

    async def write_blob(self, filename: str, chunks: AsyncIterable[bytes]) -> StoredBlob:
        if self.state is not UploadState.BLOB_PENDING:
            raise RuntimeError(f"blob already handled (state={self.state.value})")
        # On failure the store discards the partial blob; state stays BLOB_PENDING.
        self.blob = await self.blobs.write(filename, chunks)
        self._advance(UploadState.BLOB_WRITTEN)
        return self.blob

    async def write_metadata(self, record: DocumentRecord) -> DocumentRecord:
        """Insert ``record``; on any failure (or cancellation) compensate and re-raise."""
        if self.state is not UploadState.BLOB_WRITTEN:
            raise RuntimeError(f"metadata write needs a written blob (state={self.state.value})")
        try:
            self.record = await self.repo.insert(record)
        except (Exception, asyncio.CancelledError):
            self._advance(UploadState.META_FAILED)
            await self.compensate()
            raise
        self._advance(UploadState.META_WRITTEN)
        return self.record

    async def compensate(self) -> None:
        self._advance(UploadState.COMPENSATING)
        assert self.blob is not None
        try:
            await self.blobs.delete(self.blob.blob_id)
        except BlobNotFoundError:
            # already gone; nothing left to undo
            pass
        except Exception:
            logger.warning(
                "Compensating delete failed; blob %s is orphaned",
                self.blob.blob_id,
                exc_info=True,
                extra={"doc_id": self.blob.blob_id},
            )
            return
        self._advance(UploadState.COMPENSATED)

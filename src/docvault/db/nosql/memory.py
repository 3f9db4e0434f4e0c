from __future__ import annotations

import asyncio
from typing import Dict, List

from bson import ObjectId

from docvault.documents.models import DocumentFilter, DocumentRecord, Page

from .repository import DocumentRepository, DuplicateBlobIdError


class MemoryDocumentRepository(DocumentRepository):
    """Dict-backed repository with the same ordering and uniqueness rules."""

    def __init__(self):
        self._by_blob: Dict[str, DocumentRecord] = {}
        self._lock = asyncio.Lock()

    async def insert(self, record: DocumentRecord) -> DocumentRecord:
        async with self._lock:
            if record.blob_id in self._by_blob:
                raise DuplicateBlobIdError(f"duplicate doc_id {record.blob_id}")
            stored = record.model_copy(update={"id": str(ObjectId())})
            self._by_blob[record.blob_id] = stored
        return stored

    async def find(self, where: DocumentFilter, page: Page | None = None) -> List[DocumentRecord]:
        page = page or Page()
        async with self._lock:
            rows = [r for r in self._by_blob.values() if where.matches(r)]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        rows = rows[page.offset :]
        if page.limit:
            rows = rows[: page.limit]
        return rows

    async def exists(self, where: DocumentFilter) -> bool:
        async with self._lock:
            return any(where.matches(r) for r in self._by_blob.values())

    async def delete_by_blob_id(self, blob_id: str) -> int:
        async with self._lock:
            return 1 if self._by_blob.pop(blob_id, None) is not None else 0

    def __len__(self) -> int:
        return len(self._by_blob)

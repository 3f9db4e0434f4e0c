from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timezone
from typing import Any, Dict, List

from bson import ObjectId
from pydantic import ValidationError
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from docvault.documents.models import DocumentFilter, DocumentRecord, Page

from .indexes import ensure_document_indexes

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """The metadata store rejected or failed an operation."""


class DuplicateBlobIdError(RepositoryError):
    pass


class DocumentRepository(ABC):
    """Metadata index over document records, newest first."""

    @abstractmethod
    async def insert(self, record: DocumentRecord) -> DocumentRecord:
        """Store ``record`` and return it with its store-assigned ``id``."""

    @abstractmethod
    async def find(self, where: DocumentFilter, page: Page | None = None) -> List[DocumentRecord]:
        """Records matching ``where``, sorted by ``created_at`` descending."""

    @abstractmethod
    async def exists(self, where: DocumentFilter) -> bool:
        ...

    @abstractmethod
    async def delete_by_blob_id(self, blob_id: str) -> int:
        """Delete the record for ``blob_id``; returns the number removed."""

    async def ensure_indexes(self) -> None:
        return None

    async def ping(self) -> bool:
        return True


def to_mongo(record: DocumentRecord) -> Dict[str, Any]:
    return {
        "doc_id": ObjectId(record.blob_id),
        "filename": record.filename,
        "size": record.size,
        "id_cliente": record.owner_id,
        "id_expediente": record.case_id,
        "created_at": record.created_at,
    }


def from_mongo(doc: Dict[str, Any]) -> DocumentRecord:
    data = dict(doc)
    data["_id"] = str(data["_id"]) if data.get("_id") is not None else None
    data["doc_id"] = str(data["doc_id"])
    created = data.get("created_at")
    if created is not None and getattr(created, "tzinfo", None) is None:
        data["created_at"] = created.replace(tzinfo=timezone.utc)
    return DocumentRecord.model_validate(data)


def to_query(where: DocumentFilter) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if where.owner_id is not None:
        query["id_cliente"] = where.owner_id
    if where.case_id is not None:
        query["id_expediente"] = where.case_id
    if where.blob_id is not None:
        query["doc_id"] = ObjectId(where.blob_id)
    return query


class MongoDocumentRepository(DocumentRepository):
    """Motor-backed repository over the ``documentos`` collection."""

    def __init__(self, collection):
        self.collection = collection

    async def insert(self, record: DocumentRecord) -> DocumentRecord:
        try:
            res = await self.collection.insert_one(to_mongo(record))
        except DuplicateKeyError as exc:
            raise DuplicateBlobIdError(f"duplicate doc_id {record.blob_id}") from exc
        except PyMongoError as exc:
            raise RepositoryError("insert failed") from exc
        return record.model_copy(update={"id": str(res.inserted_id)})

    async def find(self, where: DocumentFilter, page: Page | None = None) -> List[DocumentRecord]:
        page = page or Page()
        cursor = self.collection.find(
            to_query(where),
            sort=[("created_at", DESCENDING)],
            skip=page.offset,
            limit=page.limit or 0,
        )
        out: List[DocumentRecord] = []
        try:
            async for doc in cursor:
                try:
                    out.append(from_mongo(doc))
                except (ValidationError, KeyError):
                    logger.warning("Skipping undecodable document record %s", doc.get("_id"))
        except PyMongoError as exc:
            raise RepositoryError("find failed") from exc
        return out

    async def exists(self, where: DocumentFilter) -> bool:
        try:
            return await self.collection.count_documents(to_query(where), limit=1) > 0
        except PyMongoError as exc:
            raise RepositoryError("count failed") from exc

    async def delete_by_blob_id(self, blob_id: str) -> int:
        try:
            res = await self.collection.delete_one({"doc_id": ObjectId(blob_id)})
        except PyMongoError as exc:
            raise RepositoryError("delete failed") from exc
        return int(res.deleted_count or 0)

    async def ensure_indexes(self) -> None:
        await ensure_document_indexes(self.collection)

    async def ping(self) -> bool:
        try:
            await self.collection.database.command("ping")
            return True
        except PyMongoError:
            return False

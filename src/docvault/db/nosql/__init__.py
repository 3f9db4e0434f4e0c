from __future__ import annotations

from .indexes import DOCUMENT_INDEXES, ensure_document_indexes
from .memory import MemoryDocumentRepository
from .repository import (
    DocumentRepository,
    DuplicateBlobIdError,
    MongoDocumentRepository,
    RepositoryError,
)
from .session import create_mongo_client, dispose_mongo, get_database

__all__ = [
    "DOCUMENT_INDEXES",
    "ensure_document_indexes",
    "DocumentRepository",
    "DuplicateBlobIdError",
    "MongoDocumentRepository",
    "MemoryDocumentRepository",
    "RepositoryError",
    "create_mongo_client",
    "dispose_mongo",
    "get_database",
]

from __future__ import annotations

import logging

from pymongo import ASCENDING, DESCENDING, IndexModel

logger = logging.getLogger(__name__)

# Backs the three lookups: by owner, by case (both newest first) and by blob id.
DOCUMENT_INDEXES: list[IndexModel] = [
    IndexModel([("id_cliente", ASCENDING), ("created_at", DESCENDING)], name="owner_created"),
    IndexModel([("id_expediente", ASCENDING), ("created_at", DESCENDING)], name="case_created"),
    IndexModel([("doc_id", ASCENDING)], name="doc_id_unique", unique=True),
]


async def ensure_document_indexes(collection) -> list[str]:
    names = await collection.create_indexes(DOCUMENT_INDEXES)
    logger.info("Ensured indexes on %s: %s", collection.name, ", ".join(names))
    return names

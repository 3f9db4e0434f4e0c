from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from docvault import __version__
from docvault.app.core.env import get_env
from docvault.app.settings import ServiceSettings, get_settings
from docvault.db.nosql.memory import MemoryDocumentRepository
from docvault.db.nosql.repository import DocumentRepository, MongoDocumentRepository
from docvault.db.nosql.session import create_mongo_client, dispose_mongo, get_database
from docvault.documents.router import router as documents_router
from docvault.documents.service import DocumentService
from docvault.storage.backends import GridFSBlobStore, MemoryBlobStore
from docvault.storage.base import BlobStore

from .middleware.errors.catchall import CatchAllExceptionMiddleware
from .middleware.errors.handlers import register_error_handlers
from .middleware.request_size_limit import RequestSizeLimitMiddleware
from .middleware.timeout import BodyReadTimeoutMiddleware, HandlerTimeoutMiddleware
from .routers.health import router as health_router

logger = logging.getLogger(__name__)

# Multipart boundaries and the id_expediente field ride on top of the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def _build_stores(app: FastAPI, settings: ServiceSettings) -> tuple[BlobStore, DocumentRepository]:
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory document storage; contents are lost on restart")
        return MemoryBlobStore(), MemoryDocumentRepository()

    client = create_mongo_client(settings)
    app.state.mongo_client = client
    db = get_database(client, settings)
    blobs = GridFSBlobStore(db, bucket_name=settings.gridfs_bucket)
    repo = MongoDocumentRepository(db[settings.metadata_collection])
    return blobs, repo


def create_app(
    settings: Optional[ServiceSettings] = None,
    *,
    blobs: Optional[BlobStore] = None,
    repo: Optional[DocumentRepository] = None,
) -> FastAPI:
    """Build the document service app.

    Stores default to what ``settings.storage_backend`` selects; pass ``blobs``
    and ``repo`` to inject others (tests do this with the memory stores).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        documents: DocumentService = _app.state.documents
        try:
            await documents.repo.ensure_indexes()
        except PyMongoError:
            logger.warning("Could not ensure document indexes", exc_info=True)
        try:
            yield
        finally:
            await documents.blobs.close()
            client = getattr(_app.state, "mongo_client", None)
            if client is not None:
                dispose_mongo(client)

    app = FastAPI(title="docvault", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    if blobs is None or repo is None:
        default_blobs, default_repo = _build_stores(app, settings)
        blobs = blobs or default_blobs
        repo = repo or default_repo
    app.state.documents = DocumentService(settings, blobs, repo)

    # Innermost first; CORS ends up outermost so preflights never hit the limits.
    app.add_middleware(CatchAllExceptionMiddleware)
    app.add_middleware(HandlerTimeoutMiddleware, timeout_seconds=settings.write_timeout_seconds)
    app.add_middleware(BodyReadTimeoutMiddleware, timeout_seconds=settings.read_timeout_seconds)
    app.add_middleware(
        RequestSizeLimitMiddleware,
        max_bytes=settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(documents_router)

    if settings.expose_unrestricted_listing:
        logger.warning("GET /admin/documentos lists every tenant's documents without authentication")
    logger.info(
        "%s version of docvault initialized [env: %s, storage: %s]",
        __version__,
        get_env().value,
        settings.storage_backend,
    )
    return app

"""Document storage and retrieval.

``DocumentService`` composes a :class:`BlobStore` (payloads) and a
:class:`DocumentRepository` (metadata). The two stores share no transaction:
upload writes the blob before the record and deletes the blob again if the
record cannot be written; delete removes the blob before the record. A record
is therefore never visible without its payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterable, Callable, List, Optional

from docvault.app.settings import ServiceSettings
from docvault.auth.identity import Identity
from docvault.db.nosql.repository import DocumentRepository, RepositoryError
from docvault.exceptions import (
    BadRequest,
    Forbidden,
    MetadataReadFailed,
    MetadataWriteFailed,
    NotFound,
    StorageReadFailed,
    StorageWriteFailed,
    Unauthorized,
)
from docvault.security.policy import effective_filter, require_any_scope
from docvault.storage.base import (
    BlobNotFoundError,
    BlobReader,
    BlobStore,
    BlobStoreError,
    InvalidBlobIdError,
    validate_blob_id,
)
from docvault.storage.limits import capped

from .models import DocumentFilter, DocumentRecord, Page, UploadResult, parse_positive_id
from .saga import UploadSaga

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Download:
    blob_id: str
    media_type: str
    attachment_name: str
    reader: BlobReader

    @property
    def content_disposition(self) -> str:
        return f"attachment; filename={self.attachment_name}"


class DocumentService:
    def __init__(
        self,
        settings: ServiceSettings,
        blobs: BlobStore,
        repo: DocumentRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.blobs = blobs
        self.repo = repo
        self._clock = clock

    # ------------------------------------------------------------------ upload

    async def upload(
        self,
        identity: Identity,
        *,
        filename: Optional[str],
        case_id: object,
        chunks: AsyncIterable[bytes],
    ) -> UploadResult:
        """Store a payload and its metadata for ``identity``.

        Raises:
            BadRequest: missing file name or invalid case id (before any I/O).
            PayloadTooLarge: the stream exceeded ``max_upload_bytes``.
            StorageWriteFailed: the blob could not be written; no record exists.
            MetadataWriteFailed: the record could not be written; the blob was
                deleted again (best-effort).
        """
        if not filename:
            raise BadRequest("file is required")
        case = parse_positive_id(case_id, "id_expediente")

        saga = UploadSaga(self.blobs, self.repo)
        try:
            stored = await saga.write_blob(filename, capped(chunks, self.settings.max_upload_bytes))
        except (BlobStoreError, OSError) as exc:
            logger.error("Blob write failed for %r", filename, exc_info=True)
            raise StorageWriteFailed() from exc

        record = DocumentRecord(
            blob_id=stored.blob_id,
            filename=filename,
            size=stored.size,
            owner_id=identity.subject_id,
            case_id=case,
            created_at=self._clock(),
        )
        try:
            await saga.write_metadata(record)
        except RepositoryError as exc:
            logger.error(
                "Metadata write failed; upload rolled back (state=%s)",
                saga.state.value,
                exc_info=True,
                extra={"doc_id": stored.blob_id, "id_expediente": case},
            )
            raise MetadataWriteFailed() from exc

        logger.info(
            "Stored document %s (%d bytes)",
            stored.blob_id,
            stored.size,
            extra={"doc_id": stored.blob_id, "id_cliente": identity.subject_id, "id_expediente": case},
        )
        return UploadResult(blob_id=stored.blob_id, filename=filename, size=stored.size, case_id=case)

    # -------------------------------------------------------------------- list

    async def _find(self, where: DocumentFilter, page: Page | None = None) -> List[DocumentRecord]:
        try:
            return await self.repo.find(where, page)
        except RepositoryError as exc:
            logger.error("Listing failed for %s", where, exc_info=True)
            raise MetadataReadFailed() from exc

    async def list_all(self, page: Page | None = None, identity: Optional[Identity] = None) -> List[DocumentRecord]:
        """Every tenant's records.

        Open to anonymous callers only while ``expose_unrestricted_listing`` is
        set; otherwise an ADMIN/OPERADOR identity is required.
        """
        if not self.settings.expose_unrestricted_listing:
            if identity is None:
                raise Unauthorized()
            require_any_scope(identity)
        return await self._find(DocumentFilter(), page)

    async def list_own(self, identity: Identity) -> List[DocumentRecord]:
        return await self._find(DocumentFilter(owner_id=identity.subject_id))

    async def list_case(self, identity: Identity, case_id: object) -> List[DocumentRecord]:
        case = parse_positive_id(case_id, "id_expediente")
        return await self._find(effective_filter(identity, DocumentFilter(case_id=case)))

    # ---------------------------------------------------------------- download

    def _blob_id(self, raw: str) -> str:
        try:
            return validate_blob_id(raw)
        except InvalidBlobIdError:
            raise BadRequest("invalid doc_id") from None

    async def open_download(self, blob_id: str) -> Download:
        """Open a payload for streaming. No ownership check: the id is the capability."""
        blob_id = self._blob_id(blob_id)
        try:
            reader = await self.blobs.open(blob_id)
        except BlobNotFoundError:
            raise NotFound() from None
        except BlobStoreError as exc:
            logger.error("Blob read failed", exc_info=True, extra={"doc_id": blob_id})
            raise StorageReadFailed() from exc
        return Download(
            blob_id=blob_id,
            media_type=self.settings.download_media_type,
            attachment_name=f"{blob_id}.pdf",
            reader=reader,
        )

    # ------------------------------------------------------------------ delete

    async def delete(self, identity: Identity, blob_id: str) -> None:
        blob_id = self._blob_id(blob_id)

        scoped = effective_filter(identity, DocumentFilter(blob_id=blob_id))
        if scoped.owner_id is not None:
            try:
                owned = await self.repo.exists(scoped)
            except RepositoryError as exc:
                raise MetadataReadFailed() from exc
            if not owned:
                raise Forbidden()

        # Blob first: a failure here leaves the record (and blob) in place.
        try:
            await self.blobs.delete(blob_id)
        except BlobNotFoundError:
            raise NotFound() from None
        except BlobStoreError:
            logger.error("Blob delete failed", exc_info=True, extra={"doc_id": blob_id})
            raise NotFound() from None

        try:
            await self.repo.delete_by_blob_id(blob_id)
        except RepositoryError:
            logger.warning(
                "Blob deleted but metadata delete failed; record is orphaned",
                exc_info=True,
                extra={"doc_id": blob_id},
            )
        logger.info("Deleted document %s", blob_id, extra={"doc_id": blob_id, "id_cliente": identity.subject_id})

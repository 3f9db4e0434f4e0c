"""HTTP routes for document upload, listing, download and delete.

Paths keep the names existing clients already call (``/documentos``,
``/mis-documentos``, ``/expedientes/{id}/documentos``).
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from fastapi.responses import StreamingResponse

from docvault.api.fastapi.dependencies.auth import IdentityDep, ListingIdentityDep
from docvault.exceptions import BadRequest
from docvault.storage.base import DEFAULT_CHUNK_SIZE
from docvault.storage.limits import iter_file

from .models import DocumentRecord, Page, UploadResult
from .service import DocumentService

router = APIRouter(tags=["Documents"])


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.documents  # type: ignore[attr-defined]


ServiceDep = Annotated[DocumentService, Depends(get_document_service)]


@router.get("/admin/documentos", response_model=list[DocumentRecord])
async def list_all_documents(
    service: ServiceDep,
    identity: ListingIdentityDep,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
) -> list[DocumentRecord]:
    """List every tenant's documents, newest first.

    Unauthenticated while ``EXPOSE_UNRESTRICTED_LISTING`` is enabled.
    Invalid ``limit`` (outside 1..200) or ``offset`` (< 0) values are ignored.
    """
    return await service.list_all(Page.coerce(limit, offset), identity=identity)


@router.post("/documentos", response_model=UploadResult)
async def upload_document(
    service: ServiceDep,
    identity: IdentityDep,
    file: Optional[UploadFile] = File(None),
    id_expediente: Optional[str] = Form(None),
) -> UploadResult:
    """Upload a file (multipart ``file``) into case ``id_expediente``."""
    if file is None:
        raise BadRequest("file is required")
    try:
        return await service.upload(
            identity,
            filename=file.filename,
            case_id=id_expediente,
            chunks=iter_file(file, DEFAULT_CHUNK_SIZE),
        )
    finally:
        await file.close()


@router.get("/mis-documentos", response_model=list[DocumentRecord])
async def list_my_documents(service: ServiceDep, identity: IdentityDep) -> list[DocumentRecord]:
    return await service.list_own(identity)


@router.get("/expedientes/{id_expediente}/documentos", response_model=list[DocumentRecord])
async def list_case_documents(
    id_expediente: str, service: ServiceDep, identity: IdentityDep
) -> list[DocumentRecord]:
    """Documents of one case; CLIENTE callers only see their own."""
    return await service.list_case(identity, id_expediente)


@router.get("/documentos/{doc_id}", response_class=StreamingResponse)
async def download_document(doc_id: str, service: ServiceDep) -> StreamingResponse:
    """Public download: anyone holding the id can fetch the payload."""
    download = await service.open_download(doc_id)
    return StreamingResponse(
        download.reader.chunks,
        media_type=download.media_type,
        headers={
            "Content-Disposition": download.content_disposition,
            "Content-Length": str(download.reader.length),
        },
    )


@router.delete("/documentos/{doc_id}", status_code=204, response_class=Response)
async def delete_document(doc_id: str, service: ServiceDep, identity: IdentityDep) -> Response:
    await service.delete(identity, doc_id)
    return Response(status_code=204)

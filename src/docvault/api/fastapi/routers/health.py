from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

router = APIRouter(tags=["internal"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/health/mongo", include_in_schema=False)
async def storage_health(request: Request):
    documents = request.app.state.documents  # type: ignore[attr-defined]
    ok = await documents.repo.ping() and await documents.blobs.ping()
    return Response(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE
    )

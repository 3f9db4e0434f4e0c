from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from docvault.exceptions import DocVaultError

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def problem_response(
    *,
    status: int,
    title: str,
    detail: Optional[str] = None,
    code: Optional[str] = None,
    instance: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    body: dict[str, Any] = {"title": title, "status": status}
    if detail is not None:
        body["detail"] = detail
    if code is not None:
        body["code"] = code
    if instance is not None:
        body["instance"] = instance
    body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_MEDIA_TYPE, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DocVaultError)
    async def _docvault_error(request: Request, exc: DocVaultError):
        if exc.status_code >= 500:
            logger.error(
                "%s on %s (%s): %s", type(exc).__name__, request.url.path, exc.status_code, exc.detail,
                extra={"http_method": request.method, "path": request.url.path, "status_code": exc.status_code},
            )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return problem_response(
            status=exc.status_code,
            title=exc.title,
            detail=exc.detail,
            code=exc.code,
            instance=request.url.path,
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        try:
            title = HTTPStatus(exc.status_code).phrase
        except ValueError:
            title = "HTTP Error"
        return problem_response(
            status=exc.status_code,
            title=title,
            detail=str(exc.detail) if exc.detail else None,
            code=getattr(exc, "code", None),
            instance=request.url.path,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return problem_response(
            status=400,
            title="Bad Request",
            detail="Malformed request.",
            code="BAD_REQUEST",
            instance=request.url.path,
            errors=jsonable_errors(exc),
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]

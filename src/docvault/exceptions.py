"""Error taxonomy surfaced by the document service.

Every error carries the HTTP status it maps to and a stable machine code so the
HTTP layer can render it without knowing about individual failure sites.
"""

from __future__ import annotations


class DocVaultError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    title: str = "Internal Server Error"
    default_detail: str = "Unexpected error."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequest(DocVaultError):
    status_code = 400
    code = "BAD_REQUEST"
    title = "Bad Request"
    default_detail = "Malformed or missing field."


class Unauthorized(DocVaultError):
    status_code = 401
    code = "UNAUTHORIZED"
    title = "Unauthorized"
    default_detail = "invalid or missing credentials"


class Forbidden(DocVaultError):
    status_code = 403
    code = "FORBIDDEN"
    title = "Forbidden"
    default_detail = "not authorized for this document"


class NotFound(DocVaultError):
    status_code = 404
    code = "NOT_FOUND"
    title = "Not Found"
    default_detail = "document not found"


class PayloadTooLarge(DocVaultError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"
    title = "Payload Too Large"
    default_detail = "Request body exceeds allowed size."


class StorageWriteFailed(DocVaultError):
    code = "STORAGE_WRITE_FAILED"
    default_detail = "could not write document payload"


class StorageReadFailed(DocVaultError):
    code = "STORAGE_READ_FAILED"
    default_detail = "could not read document payload"


class MetadataWriteFailed(DocVaultError):
    code = "METADATA_WRITE_FAILED"
    default_detail = "could not save document metadata"


class MetadataReadFailed(DocVaultError):
    code = "METADATA_READ_FAILED"
    default_detail = "could not list documents"


class InternalError(DocVaultError):
    pass


__all__ = [
    "DocVaultError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "PayloadTooLarge",
    "StorageWriteFailed",
    "StorageReadFailed",
    "MetadataWriteFailed",
    "MetadataReadFailed",
    "InternalError",
]

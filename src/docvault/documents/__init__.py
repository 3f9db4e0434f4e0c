"""Document storage and retrieval.

- Upload payloads with owner/case metadata (blob first, record second,
  compensating blob delete when the record cannot be written)
- List by owner, by case (role-narrowed) or everything (flag-gated)
- Public download by blob id
- Owner- or role-checked delete (blob first, record second)
"""

from .models import DocumentFilter, DocumentRecord, Page, UploadResult
from .saga import UploadSaga, UploadState
from .service import DocumentService, Download

__all__ = [
    "DocumentFilter",
    "DocumentRecord",
    "Page",
    "UploadResult",
    "UploadSaga",
    "UploadState",
    "DocumentService",
    "Download",
]

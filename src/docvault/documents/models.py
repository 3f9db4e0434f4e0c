"""Document metadata models.

Wire and persisted field names follow the existing ``documentos`` collection
(``doc_id``, ``id_cliente``, ``id_expediente``); Python code uses the English
attribute names.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from docvault.exceptions import BadRequest

MAX_PAGE_LIMIT = 200

# Base-10 with optional sign; no whitespace or digit separators.
_INT_RE = re.compile(r"[+-]?[0-9]+")


class DocumentRecord(BaseModel):
    """Metadata for one stored payload."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = Field(default=None, alias="_id", description="Metadata record id")
    blob_id: str = Field(..., alias="doc_id", description="Blob identifier")
    filename: str = Field(..., description="Original filename")
    size: int = Field(..., ge=0, description="Payload size in bytes")
    owner_id: int = Field(..., gt=0, alias="id_cliente", description="Owning client")
    case_id: int = Field(..., gt=0, alias="id_expediente", description="Case (expediente)")
    created_at: datetime = Field(..., description="Server-assigned upload time")


class UploadResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blob_id: str = Field(..., alias="doc_id")
    filename: str
    size: int
    case_id: int = Field(..., alias="id_expediente")


@dataclass(frozen=True)
class DocumentFilter:
    """Equality filter over indexed record fields; ``None`` means unconstrained."""

    owner_id: Optional[int] = None
    case_id: Optional[int] = None
    blob_id: Optional[str] = None

    def matches(self, record: DocumentRecord) -> bool:
        if self.owner_id is not None and record.owner_id != self.owner_id:
            return False
        if self.case_id is not None and record.case_id != self.case_id:
            return False
        if self.blob_id is not None and record.blob_id != self.blob_id:
            return False
        return True


@dataclass(frozen=True)
class Page:
    limit: Optional[int] = None
    offset: int = 0

    @classmethod
    def coerce(cls, limit: Any = None, offset: Any = None) -> "Page":
        """Build a page from raw query values.

        Out-of-range or unparseable values are dropped rather than rejected:
        ``limit`` must be in (0, 200] and ``offset`` >= 0.
        """
        lim = _maybe_int(limit)
        off = _maybe_int(offset)
        return cls(
            limit=lim if lim is not None and 0 < lim <= MAX_PAGE_LIMIT else None,
            offset=off if off is not None and off >= 0 else 0,
        )


def _maybe_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and _INT_RE.fullmatch(raw):
        return int(raw)
    return None


def parse_positive_id(raw: Any, field: str = "id_expediente") -> int:
    """Parse a positive integer identifier or raise :class:`BadRequest`."""
    if raw is None or raw == "":
        raise BadRequest(f"{field} is required")
    value = _maybe_int(raw)
    if value is None or value <= 0:
        raise BadRequest(f"invalid {field}")
    return value


__all__ = [
    "MAX_PAGE_LIMIT",
    "DocumentRecord",
    "UploadResult",
    "DocumentFilter",
    "Page",
    "parse_positive_id",
]

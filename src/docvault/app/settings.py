from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

MB = 1024 * 1024


class ServiceSettings(BaseSettings):
    """
    Process-wide configuration, read once at startup.

    Env names are flat (PORT, MONGO_URI, JWT_SECRET, MAX_UPLOAD_MB, ...) and may
    also come from a .env file in the working directory. Instances are frozen;
    build a new one with ``model_copy(update=...)`` in tests.
    """

    # HTTP
    port: int = Field(default=8081)
    allowed_origins: str = Field(default="*")
    read_timeout_seconds: int = Field(default=20)
    write_timeout_seconds: int = Field(default=120)

    # Mongo (GridFS payloads + metadata collection)
    mongo_uri: str = Field(default="mongodb://localhost:27017")
    mongo_db: str = Field(default="documentos_db")
    metadata_collection: str = Field(default="documentos")
    gridfs_bucket: str = Field(default="fs")
    storage_backend: Literal["mongo", "memory"] = Field(default="mongo")

    # Credentials
    jwt_secret: SecretStr
    jwt_algorithm: str = Field(default="HS256")
    jwt_leeway_seconds: int = Field(default=0)

    # Documents
    max_upload_mb: int = Field(default=50)
    download_media_type: str = Field(default="application/pdf")
    # Lists every tenant's metadata on GET /admin/documentos without a credential.
    expose_unrestricted_listing: bool = Field(default=True)

    # Logging
    log_level: Optional[str] = Field(default=None)
    log_format: Optional[Literal["plain", "json"]] = Field(default=None)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * MB

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()] or ["*"]


@lru_cache
def get_settings(**kwargs) -> ServiceSettings:
    # Only include kwargs that are not None, so defaults in ServiceSettings are used
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    return ServiceSettings(**filtered)

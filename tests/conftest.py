"""
Root conftest.py for docvault tests.

Provides:
1. Marker registration (mirrors pyproject.toml)
2. Settings and bearer-token factories
3. Memory-backed stores, service and an ASGI client over the full app
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from docvault.api.fastapi.setup import create_app
from docvault.app.settings import ServiceSettings
from docvault.auth.identity import Identity, Role
from docvault.db.nosql.memory import MemoryDocumentRepository
from docvault.documents.service import DocumentService
from docvault.storage.backends.memory import MemoryBlobStore

TEST_SECRET = "docvault-test-secret-0123456789abcdef"


def pytest_configure(config):
    for name, desc in [
        ("documents", "Document service and routes"),
        ("storage", "Blob store backends"),
        ("security", "Credential verification and authorization policy"),
        ("db", "Metadata repository"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# SETTINGS & CREDENTIALS
# =============================================================================


def make_settings(**overrides: Any) -> ServiceSettings:
    values: dict[str, Any] = {
        "jwt_secret": TEST_SECRET,
        "storage_backend": "memory",
        "max_upload_mb": 1,
    }
    values.update(overrides)
    return ServiceSettings(_env_file=None, **values)


def make_token(
    sub: Any = 7,
    role: str | None = "CLIENTE",
    /,
    *,
    secret: str = TEST_SECRET,
    expires_in: int = 300,
    claim: str = "tipo",
    **extra: Any,
) -> str:
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {"sub": sub, "iat": now, "exp": now + timedelta(seconds=expires_in)}
    if role is not None:
        claims[claim] = role
    claims.update(extra)
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(sub: Any = 7, role: str = "CLIENTE", **kwargs: Any) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub, role, **kwargs)}"}


@pytest.fixture
def settings() -> ServiceSettings:
    return make_settings()


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture
def cliente() -> Identity:
    return Identity(subject_id=7, role=Role.CLIENTE)


@pytest.fixture
def other_cliente() -> Identity:
    return Identity(subject_id=8, role=Role.CLIENTE)


@pytest.fixture
def admin() -> Identity:
    return Identity(subject_id=1, role=Role.ADMIN)


@pytest.fixture
def operador() -> Identity:
    return Identity(subject_id=2, role=Role.OPERADOR)


# =============================================================================
# STORES & SERVICE
# =============================================================================


class StepClock:
    """Deterministic clock: each call is one second after the previous one."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


async def chunks_of(*parts: bytes):
    for part in parts:
        yield part


@pytest.fixture
def blobs() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def repo() -> MemoryDocumentRepository:
    return MemoryDocumentRepository()


@pytest.fixture
def service(settings, blobs, repo) -> DocumentService:
    return DocumentService(settings, blobs, repo, clock=StepClock())


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def app(settings, blobs, repo):
    return create_app(settings, blobs=blobs, repo=repo)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

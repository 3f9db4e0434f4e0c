from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Request

from docvault.app.settings import ServiceSettings
from docvault.auth.identity import Identity, verify_token
from docvault.exceptions import Unauthorized

BEARER_PREFIX = "Bearer "


def _app_settings(request: Request) -> ServiceSettings:
    return request.app.state.settings  # type: ignore[attr-defined]


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if header is None:
        return None
    if not header.startswith(BEARER_PREFIX):
        raise Unauthorized()
    return header[len(BEARER_PREFIX):].strip()


def _verify(request: Request, token: Optional[str]) -> Identity:
    settings = _app_settings(request)
    identity = verify_token(
        token,
        secret=settings.jwt_secret.get_secret_value(),
        algorithms=(settings.jwt_algorithm,),
        leeway=settings.jwt_leeway_seconds,
    )
    request.state.identity = identity
    return identity


async def require_identity(request: Request) -> Identity:
    """Verified caller identity; also stored on ``request.state.identity``."""
    return _verify(request, _bearer_token(request))


async def optional_identity(request: Request) -> Optional[Identity]:
    """Like :func:`require_identity`, but ``None`` when no Authorization header is sent."""
    token = _bearer_token(request)
    if token is None:
        return None
    return _verify(request, token)


async def listing_identity(request: Request) -> Optional[Identity]:
    # The open listing never reads the Authorization header.
    if _app_settings(request).expose_unrestricted_listing:
        return None
    return await optional_identity(request)


IdentityDep = Annotated[Identity, Depends(require_identity)]
ListingIdentityDep = Annotated[Optional[Identity], Depends(listing_identity)]

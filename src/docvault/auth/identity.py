"""Bearer credential verification.

Tokens are issued elsewhere; this module only checks them. A token carries the
tenant id in ``sub`` and the caller role in ``tipo`` (``role`` is accepted as
a fallback claim name), plus the usual ``exp``/``iat``/``nbf`` claims.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Sequence

import jwt

from docvault.exceptions import Unauthorized


class Role(StrEnum):
    CLIENTE = "CLIENTE"
    ADMIN = "ADMIN"
    OPERADOR = "OPERADOR"


@dataclass(frozen=True)
class Identity:
    subject_id: int
    role: Role


def _subject(raw: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(raw, bool):
        raise ValueError("sub")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        raise ValueError("sub")
    if value <= 0:
        raise ValueError("sub")
    return value


def verify_token(
    token: str | None,
    *,
    secret: str,
    algorithms: Sequence[str] = ("HS256",),
    leeway: int = 0,
) -> Identity:
    """Verify ``token`` and return the caller identity.

    Any failure (missing, malformed, bad signature, expired, unknown role)
    raises :class:`Unauthorized` with the same message.
    """
    if not token:
        raise Unauthorized()
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=list(algorithms),
            leeway=leeway,
            # sub is numeric in issued tokens; it is validated below instead
            options={"require": ["exp"], "verify_sub": False},
        )
        subject_id = _subject(claims.get("sub"))
        role = Role(claims.get("tipo") or claims.get("role"))
    except (jwt.PyJWTError, ValueError, TypeError):
        raise Unauthorized() from None
    return Identity(subject_id=subject_id, role=role)


__all__ = ["Role", "Identity", "verify_token"]

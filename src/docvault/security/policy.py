from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Dict

from docvault.auth.identity import Identity, Role
from docvault.documents.models import DocumentFilter
from docvault.exceptions import Forbidden


class Scope(str, Enum):
    OWN = "own"  # only documents whose owner is the caller
    ANY = "any"  # documents of every tenant


# Central role -> visibility mapping.
ROLE_SCOPES: Dict[Role, Scope] = {
    Role.CLIENTE: Scope.OWN,
    Role.ADMIN: Scope.ANY,
    Role.OPERADOR: Scope.ANY,
}


def scope_for(identity: Identity) -> Scope:
    # Unmapped roles get the narrowest scope.
    return ROLE_SCOPES.get(identity.role, Scope.OWN)


def effective_filter(identity: Identity, requested: DocumentFilter) -> DocumentFilter:
    """Narrow ``requested`` to what ``identity`` may see."""
    if scope_for(identity) is Scope.OWN:
        return replace(requested, owner_id=identity.subject_id)
    return requested


def require_any_scope(identity: Identity) -> Identity:
    if scope_for(identity) is not Scope.ANY:
        raise Forbidden("insufficient role")
    return identity


__all__ = [
    "Scope",
    "ROLE_SCOPES",
    "scope_for",
    "effective_filter",
    "require_any_scope",
]

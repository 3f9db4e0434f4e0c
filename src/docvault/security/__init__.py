from .policy import ROLE_SCOPES, Scope, effective_filter, require_any_scope, scope_for

__all__ = [
    "ROLE_SCOPES",
    "Scope",
    "effective_filter",
    "require_any_scope",
    "scope_for",
]

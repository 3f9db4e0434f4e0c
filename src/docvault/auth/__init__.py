from .identity import Identity, Role, verify_token

__all__ = [
    "Identity",
    "Role",
    "verify_token",
]

from .auth import (
    IdentityDep,
    ListingIdentityDep,
    listing_identity,
    optional_identity,
    require_identity,
)

__all__ = [
    "IdentityDep",
    "ListingIdentityDep",
    "listing_identity",
    "optional_identity",
    "require_identity",
]

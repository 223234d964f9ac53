from .identity_store import (
    IdentityStore,
    InMemoryIdentityStore,
    SqlIdentityStore,
    build_provisioned_user,
)

__all__ = [
    "IdentityStore",
    "InMemoryIdentityStore",
    "SqlIdentityStore",
    "build_provisioned_user",
]

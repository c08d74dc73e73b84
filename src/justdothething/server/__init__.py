"""HTTP API for justdothething.

Public API:
    create_app -- FastAPI application driving a MonitorController
    IdentityProvider -- Bearer token verification interface
    SupabaseIdentityProvider -- Supabase-backed identity provider
    InMemoryUserStore -- Process-local user records
"""

from justdothething.server.auth import AuthError, AuthUser, IdentityProvider, SupabaseIdentityProvider
from justdothething.server.users import InMemoryUserStore, UserCache, UserRecord, UserStore

__all__ = [
    "AuthError",
    "AuthUser",
    "IdentityProvider",
    "InMemoryUserStore",
    "SupabaseIdentityProvider",
    "UserCache",
    "UserRecord",
    "UserStore",
    "create_app",
]


def __getattr__(name: str):
    if name == "create_app":
        from justdothething.server.app import create_app

        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

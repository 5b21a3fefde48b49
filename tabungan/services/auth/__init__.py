"""Authentication package."""

from tabungan.services.auth.supabase_auth import (
    AuthError,
    AuthService,
    AuthSession,
    LocalAuthService,
)

__all__ = ["AuthError", "AuthService", "AuthSession", "LocalAuthService"]

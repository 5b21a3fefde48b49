"""
Supabase Authentication

Thin wrapper around Supabase Auth (email + password). The provider's
internals are not our concern; we only need a session with a user id
and email, and a single error type for the UI to display.
"""

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field
from supabase import Client

from tabungan.services.storage.supabase_store import create_supabase_client


logger = structlog.get_logger(__name__)


class AuthError(Exception):
    """Sign in / sign up / sign out failed at the provider."""
    pass


class AuthSession(BaseModel):
    """The signed-in user."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str = Field(..., min_length=3)

    @property
    def display_name(self) -> str:
        """Local part of the email address, used in the greeting."""
        return self.email.split("@")[0]


class AuthService:
    """Email/password authentication against Supabase Auth."""

    def __init__(self, client: Optional[Client] = None):
        self._client = client
        self._session: Optional[AuthSession] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_supabase_client()
        return self._client

    @property
    def current_session(self) -> Optional[AuthSession]:
        return self._session

    def _to_session(self, response, email: str) -> AuthSession:
        user = getattr(response, "user", None)
        if user is None:
            raise AuthError("Authentication returned no user")
        return AuthSession(user_id=str(user.id), email=user.email or email)

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            logger.warning("sign_in_failed", email=email, error=str(e))
            raise AuthError(str(e) or "Sign in failed")
        self._session = self._to_session(response, email)
        logger.info("signed_in", user_id=self._session.user_id)
        return self._session

    def sign_up(self, email: str, password: str) -> AuthSession:
        try:
            response = self.client.auth.sign_up(
                {"email": email, "password": password}
            )
        except Exception as e:
            logger.warning("sign_up_failed", email=email, error=str(e))
            raise AuthError(str(e) or "Sign up failed")
        self._session = self._to_session(response, email)
        logger.info("signed_up", user_id=self._session.user_id)
        return self._session

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except Exception as e:
            raise AuthError(str(e) or "Sign out failed")
        finally:
            self._session = None


class LocalAuthService(AuthService):
    """
    Accepts any well-formed email without a provider.

    Used with storage_backend=memory so the app runs offline.
    """

    def __init__(self):
        super().__init__(client=None)

    def _local_session(self, email: str, password: str) -> AuthSession:
        if "@" not in email or not password:
            raise AuthError("Email and password are required")
        self._session = AuthSession(user_id=email.lower(), email=email)
        return self._session

    def sign_in(self, email: str, password: str) -> AuthSession:
        return self._local_session(email, password)

    def sign_up(self, email: str, password: str) -> AuthSession:
        return self._local_session(email, password)

    def sign_out(self) -> None:
        self._session = None

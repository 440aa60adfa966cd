from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from supabase import AuthError, Client, create_client

from ..core.exceptions import AuthenticationError, BackendError
from ..database.connection import SupabaseConfig

logger = logging.getLogger(__name__)


class AuthGateway(Protocol):
    """Credential checks delegated to the backend's auth endpoints."""

    def sign_in(self, email: str, password: str) -> str:
        """Return the auth user id, or raise AuthenticationError."""

        raise NotImplementedError

    def sign_up(self, email: str, password: str) -> Optional[str]:
        raise NotImplementedError

    def sign_out(self) -> None:
        raise NotImplementedError


class SupabaseAuthGateway(AuthGateway):
    """Auth calls on a throwaway client per request.

    Note: the shared data client is never used here. An auth event on it would
    swap the Authorization header of every repository in the process.
    """

    def __init__(self, config: SupabaseConfig, client_factory: Callable[[str, str], Client] = create_client):
        self._config = config
        self._client_factory = client_factory

    def _auth_client(self) -> Client:
        return self._client_factory(self._config.url, self._config.anon_key)

    def sign_in(self, email: str, password: str) -> str:
        client = self._auth_client()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            logger.info("Sign-in rejected for %s: %s", email, e)
            raise AuthenticationError("Invalid email or password") from e
        if not response.user:
            raise AuthenticationError("Invalid email or password")
        self._discard(client)
        return str(response.user.id)

    def sign_up(self, email: str, password: str) -> Optional[str]:
        client = self._auth_client()
        try:
            response = client.auth.sign_up({"email": email, "password": password})
        except AuthError as e:
            logger.error("Sign-up failed for %s: %s", email, e)
            raise BackendError(str(e)) from e
        self._discard(client)
        return str(response.user.id) if response.user else None

    def sign_out(self) -> None:
        # The backend session was already dropped right after sign-in; the
        # Flask session is all that is left to clear.
        logger.debug("Sign-out: no backend session held")

    @staticmethod
    def _discard(client: Client) -> None:
        try:
            client.auth.sign_out()
        except AuthError as e:
            logger.warning("Could not close auth session: %s", e)

"""
Auth client session.

Registers or logs a user in against the API, hands the bearer token to the
store's storage adapter and initializes the store for that user.
"""

from typing import Any, Optional

import httpx

from chronoline.client.errors import AuthClientError
from chronoline.client.store import TimelineStore
from chronoline.config import settings
from chronoline.logging import get_logger
from chronoline.models import AuthResponse, User

logger = get_logger('client.auth')


class AuthSession:
    def __init__(
        self,
        store: TimelineStore,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ):
        self.store = store
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url or settings.API_BASE_URL)
        self.current_user: Optional[User] = None
        self.token: Optional[str] = None
        self.is_loading = False
        self.error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any], fallback: str) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as exc:
            raise AuthClientError(f"{fallback}: {exc}") from exc
        if response.is_error:
            raise AuthClientError(_error_message(response, fallback), response.status_code)
        return response.json()

    async def _start_session(self, auth: AuthResponse) -> None:
        self.current_user = auth.user
        self.token = auth.token
        self.store.adapter.set_auth_token(auth.token)
        await self.store.initialize(auth.user.id)

    async def register(self, username: str, email: str, password: str) -> User:
        self.is_loading = True
        self.error = None
        try:
            body = await self._post(
                "/auth/register",
                {"username": username, "email": email, "password": password},
                "Registration failed",
            )
            await self._start_session(AuthResponse.model_validate(body))
            logger.info(f"Registered and signed in as {username}")
            return self.current_user
        except AuthClientError as exc:
            self.error = exc.message
            raise
        finally:
            self.is_loading = False

    async def login(self, username: str, password: str) -> User:
        self.is_loading = True
        self.error = None
        try:
            body = await self._post(
                "/auth/login",
                {"username": username, "password": password},
                "Login failed",
            )
            await self._start_session(AuthResponse.model_validate(body))
            return self.current_user
        except AuthClientError as exc:
            self.error = exc.message
            raise
        finally:
            self.is_loading = False

    def logout(self) -> None:
        self.current_user = None
        self.token = None
        self.error = None
        self.store.adapter.set_auth_token(None)
        self.store.reset()

    async def check_auth_status(self, token: str | None = None) -> bool:
        """
        Restore a session from a saved token.

        Returns False and clears the session when the token is missing or
        rejected.
        """
        token = token or self.token
        if not token:
            self.current_user = None
            return False

        try:
            response = await self._client.get(
                "/auth/me", headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as exc:
            raise AuthClientError(f"Session check failed: {exc}") from exc

        if response.status_code in (401, 403, 404):
            self.logout()
            return False
        if response.is_error:
            raise AuthClientError(_error_message(response, "Session check failed"), response.status_code)

        await self._start_session(AuthResponse(user=User.model_validate(response.json()), token=token))
        return True

    async def refresh(self) -> str:
        """Exchange the current token for a fresh one."""
        if not self.token:
            raise AuthClientError("Not authenticated", 401)
        try:
            response = await self._client.post(
                "/auth/refresh", headers={"Authorization": f"Bearer {self.token}"}
            )
        except httpx.HTTPError as exc:
            raise AuthClientError(f"Token refresh failed: {exc}") from exc
        if response.is_error:
            raise AuthClientError(_error_message(response, "Token refresh failed"), response.status_code)
        self.token = response.json()["token"]
        self.store.adapter.set_auth_token(self.token)
        return self.token

    def clear_error(self) -> None:
        self.error = None


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return fallback

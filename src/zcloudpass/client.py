"""Session-authenticated REST client for the zcloudpass server.

The client only ever sends and receives encrypted vault blobs; encryption
and decryption live in :mod:`zcloudpass.crypto`.

Endpoints
---------
    POST /auth/register         create an account
    POST /auth/login            obtain a bearer token
    GET  /vault                 fetch the encrypted vault        (bearer)
    PUT  /vault                 replace the encrypted vault      (bearer)
    POST /auth/change-password  change the account password      (bearer)
    GET  /auth/health           liveness probe

Security Note:
    Never log request bodies, tokens or password proofs. Only log methods,
    paths and status codes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import DEFAULT_API_URL, DEFAULT_TIMEOUT, Settings, default_session_path
from .errors import ApiError, NetworkError, NoSessionError, SessionError, SessionExpiredError
from .models import ServerUserRecord, Session, VaultPayload
from .session import FileSessionStore, SessionStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SessionClient:
    """Typed access to the server API with bearer-token session handling.

    The token lives in an injected :class:`~zcloudpass.session.SessionStore`.
    Every token read → request → clear-on-401 sequence runs under one lock,
    so a rejected token is gone before the next request can pick it up.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        store: Optional[SessionStore] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.store: SessionStore = store if store is not None else FileSessionStore(default_session_path())
        self._http = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SessionClient":
        return cls(
            settings.api_url,
            FileSessionStore(settings.session_file),
            transport=transport,
            timeout=settings.timeout,
        )

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def register(
        self,
        email: str,
        master_password_proof: str,
        username: Optional[str] = None,
        encrypted_vault: Optional[str] = None,
    ) -> ServerUserRecord:
        """Create an account; raises :class:`ApiError` (409 = email taken)."""
        body: dict[str, Any] = {"email": email, "master_password": master_password_proof}
        if username is not None:
            body["username"] = username
        if encrypted_vault is not None:
            body["encrypted_vault"] = encrypted_vault

        response = await self._send("POST", "/auth/register", json=body)
        self._raise_for_status("POST", "/auth/register", response)
        return self._load(ServerUserRecord, response)

    async def login(self, email: str, master_password_proof: str) -> Session:
        """Authenticate and store the session token.

        Every failure status is reported as the same :class:`SessionError`.
        """
        response = await self._send(
            "POST",
            "/auth/login",
            json={"email": email, "master_password": master_password_proof},
        )
        if not response.is_success:
            logger.warning("Login rejected with status %s", response.status_code)
            raise SessionError()

        try:
            session = self._load(Session, response)
        except ApiError as exc:
            logger.warning("Login response carried no session token")
            raise SessionError() from exc

        async with self._lock:
            self.store.set(session.token)
        logger.info("Logged in; session expires at %s", session.expires_at)
        return session

    async def get_vault(self) -> VaultPayload:
        """Fetch the encrypted vault; ``encrypted_vault`` may be ``None``."""
        response = await self._authorized("GET", "/vault")
        return self._load(VaultPayload, response)

    async def update_vault(self, encrypted_vault: str) -> None:
        """Replace the stored blob wholesale."""
        await self._authorized("PUT", "/vault", json={"encrypted_vault": encrypted_vault})

    async def change_password(self, current_password_proof: str, new_password_proof: str) -> None:
        """Change the account password.

        The vault is not re-encrypted here; callers must encrypt it under the
        new master password and call :meth:`update_vault` themselves.
        """
        await self._authorized(
            "POST",
            "/auth/change-password",
            json={"current_password": current_password_proof, "new_password": new_password_proof},
        )

    async def check_health(self) -> str:
        response = await self._send("GET", "/auth/health")
        self._raise_for_status("GET", "/auth/health", response)
        return response.text

    def is_authenticated(self) -> bool:
        return bool(self.store.get())

    def logout(self) -> None:
        self.store.clear()
        logger.info("Logged out")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _authorized(self, method: str, path: str, json: Optional[dict] = None) -> httpx.Response:
        async with self._lock:
            token = self.store.get()
            if not token:
                raise NoSessionError()

            response = await self._send(
                method, path, json=json, headers={"Authorization": f"Bearer {token}"}
            )
            if response.status_code == 401:
                # Only drop the token we used; a newer login stays intact.
                if self.store.get() == token:
                    self.store.clear()
                logger.warning("Session rejected on %s %s; token cleared", method, path)
                raise SessionExpiredError()

            self._raise_for_status(method, path, response)
            return response

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            return await self._http.request(method, path, json=json, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("Network error on %s %s: %s", method, path, exc)
            raise NetworkError(str(exc)) from exc

    @staticmethod
    def _raise_for_status(method: str, path: str, response: httpx.Response) -> None:
        if not response.is_success:
            logger.warning("API error %s on %s %s", response.status_code, method, path)
            raise ApiError(response.status_code, response.text)

    @classmethod
    def _load(cls, model: type[ModelT], response: httpx.Response) -> ModelT:
        """Validate the body as *model*; a reply of the wrong shape is an :class:`ApiError`."""
        try:
            return model.model_validate(cls._parse_body(response))
        except ValidationError as exc:
            logger.warning("Unexpected response body (status %s)", response.status_code)
            raise ApiError(response.status_code, "Unexpected response body") from exc

    @staticmethod
    def _parse_body(response: httpx.Response) -> dict:
        """JSON body as a dict, or ``{}`` when the response is not JSON."""
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "Malformed JSON body") from exc
        return data if isinstance(data, dict) else {}

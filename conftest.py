"""pytest configuration — add src/ to sys.path and provide an in-memory server."""
import json
import secrets
import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

sys.path.insert(0, str(Path(__file__).parent / "src"))

from zcloudpass.client import SessionClient  # noqa: E402
from zcloudpass.session import MemorySessionStore  # noqa: E402

BASE_URL = "http://zcloudpass.test"


class FakeServer:
    """Just enough of the zcloudpass REST API to drive the client end to end."""

    def __init__(self) -> None:
        self.users: dict[str, dict] = {}
        self.tokens: dict[str, str] = {}
        self.requests: list[httpx.Request] = []

    def revoke_all(self) -> None:
        self.tokens.clear()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = (request.method, request.url.path)

        if route == ("GET", "/auth/health"):
            return httpx.Response(200, text="OK")
        if route == ("POST", "/auth/register"):
            return self._register(request)
        if route == ("POST", "/auth/login"):
            return self._login(request)

        email = self._authenticate(request)
        if email is None:
            return httpx.Response(401, text="Unauthorized")
        user = self.users[email]

        if route == ("GET", "/vault"):
            return httpx.Response(200, json={"encrypted_vault": user["encrypted_vault"]})
        if route == ("PUT", "/vault"):
            user["encrypted_vault"] = _json(request)["encrypted_vault"]
            return httpx.Response(204)
        if route == ("POST", "/auth/change-password"):
            body = _json(request)
            if body["current_password"] != user["master_password"]:
                return httpx.Response(403, text="Incorrect password")
            user["master_password"] = body["new_password"]
            return httpx.Response(204)
        return httpx.Response(404, text="Not found")

    def _register(self, request: httpx.Request) -> httpx.Response:
        body = _json(request)
        if body["email"] in self.users:
            return httpx.Response(409, text="Email already exists")
        user = {
            "id": len(self.users) + 1,
            "email": body["email"],
            "username": body.get("username"),
            "master_password": body["master_password"],
            "encrypted_vault": body.get("encrypted_vault"),
        }
        self.users[body["email"]] = user
        return httpx.Response(201, json={"id": user["id"], "email": user["email"], "username": user["username"]})

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = _json(request)
        user = self.users.get(body["email"])
        if user is None or user["master_password"] != body["master_password"]:
            return httpx.Response(401, text="Invalid credentials")
        token = secrets.token_hex(16)
        self.tokens[token] = body["email"]
        return httpx.Response(
            200, json={"session_token": token, "expires_at": "2030-01-01T00:00:00Z"}
        )

    def _authenticate(self, request: httpx.Request) -> str | None:
        header = request.headers.get("authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.tokens.get(header[len("Bearer "):])


def _json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest_asyncio.fixture
async def client(fake_server, store):
    async with SessionClient(BASE_URL, store, transport=httpx.MockTransport(fake_server)) as c:
        yield c

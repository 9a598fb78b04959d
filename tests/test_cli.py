"""Smoke tests for the zcloudpass command line."""

import asyncio

import httpx
import pytest
from typer.testing import CliRunner

from zcloudpass import cli
from zcloudpass.client import SessionClient
from zcloudpass.crypto import decrypt_vault, derive_password_proof
from zcloudpass.generator import SYMBOLS

runner = CliRunner()

EMAIL = "cli@example.com"
MASTER = "cli master password"


@pytest.fixture
def session_file(tmp_path, monkeypatch):
    path = tmp_path / "session.json"
    monkeypatch.setenv("ZCLOUDPASS_SESSION_FILE", str(path))
    monkeypatch.setenv("ZCLOUDPASS_API_URL", "http://zcloudpass.test")
    return path


@pytest.fixture
def logged_in(fake_server, store, monkeypatch):
    """Point the CLI at the fake server with a live session."""

    def make_client() -> SessionClient:
        return SessionClient("http://zcloudpass.test", store, transport=httpx.MockTransport(fake_server))

    async def setup():
        async with make_client() as client:
            proof = derive_password_proof(MASTER, EMAIL)
            await client.register(EMAIL, proof)
            await client.login(EMAIL, proof)

    asyncio.run(setup())
    monkeypatch.setattr(cli, "_client", make_client)
    monkeypatch.setattr(cli, "_ask_password", lambda prompt="Master password": MASTER)
    return make_client


def test_generate_single():
    result = runner.invoke(cli.app, ["generate", "--length", "24"])
    assert result.exit_code == 0
    assert "Generated password (24 chars)" in result.output


def test_generate_many_without_symbols():
    result = runner.invoke(cli.app, ["generate", "--count", "3", "--no-symbols"])
    assert result.exit_code == 0
    lines = [line.split(".", 1)[1].strip() for line in result.output.splitlines() if line.strip()[:1].isdigit()]
    assert len(lines) == 3
    for pw in lines:
        assert len(pw) == 16
        assert not set(pw) & set(SYMBOLS)


def test_generate_invalid_length():
    result = runner.invoke(cli.app, ["generate", "--length", "0"])
    assert result.exit_code == 1


def test_status_when_logged_out(session_file):
    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 0
    assert "no" in result.output


def test_logout_clears_session_file(session_file):
    session_file.write_text('{"session_token": "abc"}')
    result = runner.invoke(cli.app, ["logout"])
    assert result.exit_code == 0
    assert not session_file.exists()


def test_vault_command_without_session(session_file, monkeypatch):
    monkeypatch.setattr(cli, "_ask_password", lambda prompt="Master password": MASTER)
    result = runner.invoke(cli.app, ["list"])
    assert result.exit_code == 1


def test_add_then_list_and_delete(logged_in, fake_server):
    result = runner.invoke(cli.app, ["add", "Gmail", "--username", "u@gmail.com", "--generate"])
    assert result.exit_code == 0, result.output
    assert "saved" in result.output

    blob = fake_server.users[EMAIL]["encrypted_vault"]
    vault = asyncio.run(decrypt_vault(blob, MASTER))
    assert [e.name for e in vault.entries] == ["Gmail"]
    assert vault.entries[0].url is None

    result = runner.invoke(cli.app, ["list"])
    assert result.exit_code == 0
    assert "Gmail" in result.output

    result = runner.invoke(cli.app, ["get", "gma"])
    assert result.exit_code == 0
    assert "u@gmail.com" in result.output

    result = runner.invoke(cli.app, ["delete", "Gmail", "--yes"])
    assert result.exit_code == 0
    vault = asyncio.run(decrypt_vault(fake_server.users[EMAIL]["encrypted_vault"], MASTER))
    assert vault.entries == []


def test_get_unknown_entry(logged_in):
    result = runner.invoke(cli.app, ["get", "missing"])
    assert result.exit_code == 1


def test_expired_session_is_reported(logged_in, fake_server, store):
    fake_server.revoke_all()
    result = runner.invoke(cli.app, ["list"])
    assert result.exit_code == 1
    assert store.get() is None


def test_add_generate_invalid_length_is_reported(session_file, monkeypatch):
    monkeypatch.setattr(cli, "_ask_password", lambda prompt="Master password": MASTER)
    result = runner.invoke(cli.app, ["add", "X", "--generate", "--length", "0"])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)

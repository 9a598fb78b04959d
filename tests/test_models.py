"""Tests for zcloudpass.models."""

import pytest
from pydantic import ValidationError

from zcloudpass.models import ServerUserRecord, Session, Vault, VaultEntry, VaultPayload


def test_entry_defaults():
    e = VaultEntry(name="test")
    assert e.id
    assert e.name == "test"
    assert e.username is None
    assert e.password is None
    assert e.url is None
    assert e.notes is None


def test_entry_ids_are_unique():
    ids = {VaultEntry(name="x").id for _ in range(100)}
    assert len(ids) == 100


def test_vault_defaults():
    assert Vault().entries == []
    assert Vault() is not Vault()
    assert Vault() == Vault()


def test_vault_rejects_duplicate_ids():
    with pytest.raises(ValidationError):
        Vault(entries=[VaultEntry(id="1", name="a"), VaultEntry(id="1", name="b")])


def test_add_get_remove():
    v = Vault()
    e = VaultEntry(id="1", name="github")
    v.add(e)
    assert v.get("1") is e
    with pytest.raises(ValueError):
        v.add(VaultEntry(id="1", name="other"))
    assert v.remove("1") is e
    assert v.get("1") is None
    with pytest.raises(KeyError):
        v.remove("1")


def test_find_searches_all_text_fields():
    v = Vault(
        entries=[
            VaultEntry(id="1", name="GitHub", url="https://github.com"),
            VaultEntry(id="2", name="Bank", notes="checking account at ACME"),
            VaultEntry(id="3", name="Mail", username="alice@acme.io"),
        ]
    )
    assert [e.id for e in v.find("acme")] == ["2", "3"]
    assert [e.id for e in v.find("GITHUB")] == ["1"]
    assert v.find("nothing") == []


def test_json_encoding_omits_absent_fields():
    v = Vault(entries=[VaultEntry(id="1", name="Gmail", username="u@gmail.com", password="x")])
    assert v.to_json_bytes() == b'{"entries":[{"id":"1","name":"Gmail","username":"u@gmail.com","password":"x"}]}'


def test_json_round_trip_keeps_unknown_fields():
    data = b'{"entries":[{"id":"1","name":"n","totp":"JBSWY3DP"}]}'
    v = Vault.from_json_bytes(data)
    assert v.entries[0].model_extra == {"totp": "JBSWY3DP"}
    assert v.to_json_bytes() == data


def test_json_round_trip_keeps_null_unknown_fields():
    data = b'{"entries":[{"id":"1","name":"n","favorite":null,"tags":["a"]}]}'
    v = Vault.from_json_bytes(data)
    assert v.entries[0].model_extra == {"favorite": None, "tags": ["a"]}
    assert v.to_json_bytes() == data


def test_json_encoding_drops_explicit_null_known_fields():
    v = Vault.from_json_bytes(b'{"entries":[{"id":"1","name":"n","url":null}]}')
    assert v.to_json_bytes() == b'{"entries":[{"id":"1","name":"n"}]}'


def test_session_from_server_payload():
    s = Session.model_validate({"session_token": "tok", "expires_at": "2024-12-31T00:00:00Z"})
    assert s.token == "tok"
    assert s.expires_at.year == 2024


def test_server_user_record_keeps_extra_keys():
    rec = ServerUserRecord.model_validate({"id": 1, "email": "a@b.c", "created_at": "now"})
    assert rec.id == 1
    assert rec.model_extra == {"created_at": "now"}


def test_vault_payload_defaults_to_none():
    assert VaultPayload.model_validate({}).encrypted_vault is None

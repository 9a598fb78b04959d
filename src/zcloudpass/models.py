"""Domain models for zcloudpass."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
    model_validator,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class VaultEntry(BaseModel):
    """A single stored credential."""

    # Fields written by other client builds survive a decrypt/encrypt cycle.
    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=_new_id)
    name: str
    username: Optional[str] = None
    password: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        # Only declared optionals are dropped; a null extra field is kept as is.
        data = handler(self)
        for key in ("username", "password", "url", "notes"):
            if key in data and data[key] is None:
                del data[key]
        return data

    def matches(self, query: str) -> bool:
        q = query.lower()
        return any(
            value and q in value.lower()
            for value in (self.name, self.username, self.url, self.notes)
        )


class Vault(BaseModel):
    """The decrypted document: an ordered list of entries."""

    entries: list[VaultEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "Vault":
        seen: set[str] = set()
        for entry in self.entries:
            if entry.id in seen:
                raise ValueError(f"Duplicate entry id: {entry.id!r}")
            seen.add(entry.id)
        return self

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    def add(self, entry: VaultEntry) -> None:
        """Append *entry*; raises :class:`ValueError` if its id is taken."""
        if self.get(entry.id) is not None:
            raise ValueError(f"Duplicate entry id: {entry.id!r}")
        self.entries.append(entry)

    def get(self, entry_id: str) -> Optional[VaultEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def remove(self, entry_id: str) -> VaultEntry:
        """Remove and return the entry with *entry_id*; raises :class:`KeyError`."""
        for i, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return self.entries.pop(i)
        raise KeyError(entry_id)

    def find(self, query: str) -> list[VaultEntry]:
        """Case-insensitive substring search over name, username, URL and notes."""
        return [e for e in self.entries if e.matches(query)]

    # ------------------------------------------------------------------
    # Canonical encoding
    # ------------------------------------------------------------------

    def to_json_bytes(self) -> bytes:
        """UTF-8 JSON with absent optional fields omitted."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_json_bytes(cls, data: bytes) -> "Vault":
        return cls.model_validate_json(data)


class Session(BaseModel):
    """Bearer credential returned by ``POST /auth/login``."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(alias="session_token")
    expires_at: Optional[datetime] = None


class ServerUserRecord(BaseModel):
    """User record returned by ``POST /auth/register``."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int | str] = None
    email: Optional[str] = None
    username: Optional[str] = None


class VaultPayload(BaseModel):
    """Body of ``GET /vault``; ``encrypted_vault`` is ``None`` for a fresh account."""

    encrypted_vault: Optional[str] = None

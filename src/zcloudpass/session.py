"""Session token persistence.

Only the bearer token is ever written to disk. The file is a JSON object
keyed by :data:`SESSION_TOKEN_KEY`, written atomically and readable only by
its owner.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

SESSION_TOKEN_KEY = "session_token"


class SessionStore(Protocol):
    """Where :class:`~zcloudpass.client.SessionClient` keeps its token."""

    def get(self) -> Optional[str]: ...

    def set(self, token: str) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileSessionStore:
    """Durable store backed by a small JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def get(self) -> Optional[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            return None
        token = data.get(SESSION_TOKEN_KEY)
        return token if isinstance(token, str) else None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write via temp file
        tmp = self.path.with_suffix(".tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            # A leftover temp file keeps its old mode through O_CREAT.
            os.fchmod(fh.fileno(), 0o600)
            fh.write(json.dumps({SESSION_TOKEN_KEY: token}))
        tmp.replace(self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove session file %s: %s", self.path, exc)

"""Client configuration read from the environment.

    ZCLOUDPASS_API_URL       Base URL of the zcloudpass server
    ZCLOUDPASS_SESSION_FILE  Where the session token is persisted
    ZCLOUDPASS_TIMEOUT       Request timeout in seconds
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 30.0


def default_session_path() -> Path:
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "zcloudpass" / "session.json"


class Settings(BaseModel):
    """Validated client settings."""

    api_url: str = DEFAULT_API_URL
    session_file: Path = Field(default_factory=default_session_path)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"API URL must start with http:// or https://, got {v!r}")
        return v.rstrip("/")

    @classmethod
    def from_env(cls) -> "Settings":
        values: dict[str, object] = {}
        url = os.environ.get("ZCLOUDPASS_API_URL")
        if url:
            values["api_url"] = url
        path = os.environ.get("ZCLOUDPASS_SESSION_FILE")
        if path:
            values["session_file"] = Path(path)
        timeout = os.environ.get("ZCLOUDPASS_TIMEOUT")
        if timeout:
            values["timeout"] = timeout
        return cls(**values)

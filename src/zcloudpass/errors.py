"""Exception hierarchy for zcloudpass."""

from __future__ import annotations


class ZCloudPassError(Exception):
    """Base class for every error raised by zcloudpass."""


class SessionError(ZCloudPassError):
    """Raised when a login attempt is rejected, whatever the server status."""

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(message)


class NoSessionError(SessionError):
    """An authenticated operation was attempted without a stored token."""

    def __init__(self, message: str = "No session token found") -> None:
        super().__init__(message)


class SessionExpiredError(SessionError):
    """The server answered 401; the stored token has been cleared."""

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(message)


class ApiError(ZCloudPassError):
    """Any other non-success HTTP status."""

    def __init__(self, status: int, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        super().__init__(f"API error {status}")


class DecryptionError(ZCloudPassError, ValueError):
    """The blob is malformed or its authentication tag does not verify."""

    def __init__(self, message: str = "Failed to decrypt vault") -> None:
        super().__init__(message)


class NetworkError(ZCloudPassError):
    """Transport-level failure (host unreachable, timeout, reset...)."""

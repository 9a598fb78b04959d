"""zcloudpass — zero-knowledge cloud password vault client."""

__version__ = "0.1.0"

from .client import SessionClient
from .crypto import VaultCipher, decrypt_vault, derive_key, encrypt_vault
from .errors import (
    ApiError,
    DecryptionError,
    NetworkError,
    NoSessionError,
    SessionError,
    SessionExpiredError,
    ZCloudPassError,
)
from .generator import generate_password
from .models import Vault, VaultEntry

__all__ = [
    "ApiError",
    "DecryptionError",
    "NetworkError",
    "NoSessionError",
    "SessionClient",
    "SessionError",
    "SessionExpiredError",
    "Vault",
    "VaultCipher",
    "VaultEntry",
    "ZCloudPassError",
    "decrypt_vault",
    "derive_key",
    "encrypt_vault",
    "generate_password",
    "open_vault",
]


async def open_vault(master_password: str) -> Vault:
    """Fetch and decrypt the vault using the stored session — the one-liner for scripts.

    Settings come from the environment (see :mod:`zcloudpass.config`). A
    session must already exist (``zcloudpass login``).

    Raises:
        NoSessionError: No stored token.
        SessionExpiredError: The server rejected the token.
        DecryptionError: Wrong master password or corrupted vault.

    Example::

        import asyncio
        from zcloudpass import open_vault

        vault = asyncio.run(open_vault("correct horse battery staple"))
        github = vault.find("github")[0]
    """
    from .config import Settings

    async with SessionClient.from_settings(Settings.from_env()) as client:
        payload = await client.get_vault()
    if payload.encrypted_vault is None:
        return Vault()
    return await decrypt_vault(payload.encrypted_vault, master_password)

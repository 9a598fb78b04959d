"""Cryptographic primitives for zcloudpass.

Key derivation: PBKDF2-HMAC-SHA256 (600 000 iterations, 16-byte salt).
Encryption:     AES-256-GCM (12-byte nonce, 16-byte tag).

Blob format (base64, standard alphabet)
---------------------------------------
Offset  Length  Content
0       16      Salt
16      12      Nonce
28      …       Ciphertext + GCM tag (JSON-encoded Vault)

Security Note:
    Never log plaintext, passwords or key material.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
from typing import Optional, Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import ValidationError

from .errors import DecryptionError
from .models import Vault

logger = logging.getLogger(__name__)

SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 600_000

_PROOF_CONTEXT = "zcloudpass-auth:"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte AES key from *password* and *salt*."""
    if not password:
        raise ValueError("Master password cannot be empty.")
    if len(salt) != SALT_SIZE:
        raise ValueError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}.")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def derive_password_proof(master_password: str, email: str) -> str:
    """Return the value sent to the server in place of the master password.

    The salt is bound to the normalised email and a fixed context string, so
    the proof never equals a vault key (those use random salts).
    """
    if not master_password:
        raise ValueError("Master password cannot be empty.")
    salt = (_PROOF_CONTEXT + email.strip().lower()).encode("utf-8")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return base64.b64encode(kdf.derive(master_password.encode("utf-8"))).decode("ascii")


# ---------------------------------------------------------------------------
# Provider capability
# ---------------------------------------------------------------------------


class CryptoProvider(Protocol):
    """The primitives :class:`VaultCipher` needs from a crypto backend.

    ``open`` must raise :class:`ValueError` when authentication fails.
    """

    def random_bytes(self, n: int) -> bytes: ...

    def derive_key(self, password: str, salt: bytes) -> bytes: ...

    def seal(self, key: bytes, nonce: bytes, plaintext: bytes) -> bytes: ...

    def open(self, key: bytes, nonce: bytes, ciphertext: bytes) -> bytes: ...


class DefaultCryptoProvider:
    """``cryptography``-backed provider: PBKDF2 + AES-GCM + ``os.urandom``."""

    def random_bytes(self, n: int) -> bytes:
        return os.urandom(n)

    def derive_key(self, password: str, salt: bytes) -> bytes:
        return derive_key(password, salt)

    def seal(self, key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
        return AESGCM(key).encrypt(nonce, plaintext, None)

    def open(self, key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
        try:
            return AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag as exc:
            raise ValueError("Authentication tag mismatch.") from exc


# ---------------------------------------------------------------------------
# Vault cipher
# ---------------------------------------------------------------------------


class VaultCipher:
    """Encrypts a :class:`Vault` into a self-describing base64 blob and back.

    Key derivation runs in a worker thread, so both operations are
    suspension points rather than event-loop blockers.
    """

    def __init__(self, provider: Optional[CryptoProvider] = None) -> None:
        self.provider = provider or DefaultCryptoProvider()

    async def encrypt(self, vault: Vault, master_password: str) -> str:
        plaintext = vault.to_json_bytes()
        salt = self.provider.random_bytes(SALT_SIZE)
        nonce = self.provider.random_bytes(NONCE_SIZE)
        key = await asyncio.to_thread(self.provider.derive_key, master_password, salt)
        sealed = self.provider.seal(key, nonce, plaintext)
        return base64.b64encode(salt + nonce + sealed).decode("ascii")

    async def decrypt(self, blob: str, master_password: str) -> Vault:
        """Open *blob*; raises :class:`DecryptionError` on any failure.

        Malformed input, a wrong password and tampered data are reported
        with the same message.
        """
        salt, nonce, sealed = _parse(blob)
        if not master_password:
            raise DecryptionError()
        key = await asyncio.to_thread(self.provider.derive_key, master_password, salt)
        try:
            plaintext = self.provider.open(key, nonce, sealed)
        except ValueError as exc:
            logger.debug("Vault authentication failed")
            raise DecryptionError() from exc
        try:
            return Vault.from_json_bytes(plaintext)
        except ValidationError as exc:
            logger.debug("Decrypted payload is not a vault document")
            raise DecryptionError() from exc


def _parse(blob: str) -> tuple[bytes, bytes, bytes]:
    """Return *(salt, nonce, ciphertext)* from a blob string."""
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        logger.debug("Vault blob is not valid base64")
        raise DecryptionError() from exc

    if len(raw) < SALT_SIZE + NONCE_SIZE + TAG_SIZE:
        logger.debug("Vault blob is truncated (%d bytes)", len(raw))
        raise DecryptionError()

    salt = raw[:SALT_SIZE]
    nonce = raw[SALT_SIZE : SALT_SIZE + NONCE_SIZE]
    return salt, nonce, raw[SALT_SIZE + NONCE_SIZE :]


_default_cipher = VaultCipher()


async def encrypt_vault(vault: Vault, master_password: str) -> str:
    """Encrypt *vault* with the default provider."""
    return await _default_cipher.encrypt(vault, master_password)


async def decrypt_vault(blob: str, master_password: str) -> Vault:
    """Decrypt *blob* with the default provider."""
    return await _default_cipher.decrypt(blob, master_password)

"""Shadow credentials: generation and authenticated encryption at rest.

Ciphertexts are ``base64(nonce || ciphertext || tag)`` produced with
AES-256-GCM. The key is the SHA-256 digest of the configured secret, so any
string secret of any length is usable.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
import re
import secrets
import string

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from loguru import logger

from src.jellybridge.core.exceptions import ConfigurationError, DecryptionError
from src.jellybridge.runtime.settings import VaultSettings

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
ALPHABET = LOWERCASE + UPPERCASE + DIGITS + SYMBOLS

NONCE_SIZE = 12
TAG_SIZE = 16
USERNAME_MAX_LENGTH = 32
USERNAME_SUFFIX_HEX_BYTES = 4

_USERNAME_INVALID = re.compile(r"[^a-z0-9._-]")

_random = secrets.SystemRandom()


def generate_secret(length: int = 32) -> str:
    """Generate a random password with at least one character of every class."""
    if length < 4:
        raise ValueError("Secret length must be at least 4")

    chars = [secrets.choice(charset) for charset in (LOWERCASE, UPPERCASE, DIGITS, SYMBOLS)]
    chars.extend(secrets.choice(ALPHABET) for _ in range(length - len(chars)))
    _random.shuffle(chars)
    return "".join(chars)


def sanitize_username(name: str | None) -> str | None:
    """Reduce a provider-supplied name to a valid downstream username.

    Returns ``None`` when nothing usable remains.
    """
    if not name:
        return None
    cleaned = _USERNAME_INVALID.sub("", name.strip().lower())[:USERNAME_MAX_LENGTH]
    return cleaned or None


def generate_username(email: str) -> str:
    """Derive a unique-ish username from the local part of ``email``.

    The random suffix always survives truncation to the username limit.
    """
    suffix = secrets.token_hex(USERNAME_SUFFIX_HEX_BYTES)
    base = _USERNAME_INVALID.sub("", email.split("@", 1)[0].lower()) or "user"
    base = base[: USERNAME_MAX_LENGTH - len(suffix) - 1]
    return f"{base}_{suffix}"


class CredentialVault:
    """Encrypt and decrypt shadow passwords."""

    def __init__(self, secret: str):
        if not secret:
            raise ConfigurationError("Credential vault secret must not be empty")
        self._aead = AESGCM(hashlib.sha256(secret.encode("utf-8")).digest())

    @classmethod
    def from_settings(cls, settings: VaultSettings | None = None) -> CredentialVault:
        settings = settings or VaultSettings()
        if not settings.encryption_key:
            raise ConfigurationError(
                "No encryption key available. Set ENCRYPTION_KEY or SESSION_SECRET."
            )
        return cls(settings.encryption_key)

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a value produced by :meth:`encrypt`.

        Raises:
            DecryptionError: The input is malformed, truncated, tampered with
                or was encrypted under a different key.
        """
        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecryptionError("Ciphertext is not valid base64") from e

        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionError("Ciphertext is too short")

        nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as e:
            logger.warning("Shadow credential failed authentication")
            raise DecryptionError("Ciphertext failed authentication") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted value is not valid UTF-8") from e

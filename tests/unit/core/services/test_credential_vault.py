"""Tests for shadow credential generation and encryption."""

import base64
import os
import string
from unittest.mock import patch

import pytest

from src.jellybridge.core.exceptions import ConfigurationError, DecryptionError
from src.jellybridge.core.services.vault.credential_vault import (
    NONCE_SIZE,
    SYMBOLS,
    USERNAME_MAX_LENGTH,
    CredentialVault,
    generate_secret,
    generate_username,
    sanitize_username,
)
from src.jellybridge.runtime.settings import VaultSettings


class TestGenerateSecret:
    """Test random shadow password generation."""

    def test_default_length(self):
        assert len(generate_secret()) == 32

    def test_custom_length(self):
        assert len(generate_secret(12)) == 12

    def test_contains_every_character_class(self):
        for _ in range(50):
            secret = generate_secret(8)
            assert any(c in string.ascii_lowercase for c in secret)
            assert any(c in string.ascii_uppercase for c in secret)
            assert any(c in string.digits for c in secret)
            assert any(c in SYMBOLS for c in secret)

    def test_secrets_do_not_repeat(self):
        assert len({generate_secret() for _ in range(1000)}) == 1000

    def test_too_short(self):
        with pytest.raises(ValueError):
            generate_secret(3)


class TestUsernames:
    """Test downstream username derivation."""

    def test_sanitize_strips_invalid_characters(self):
        assert sanitize_username("  Jane Doe!  ") == "janedoe"

    def test_sanitize_keeps_allowed_punctuation(self):
        assert sanitize_username("jane.doe-1_x") == "jane.doe-1_x"

    def test_sanitize_empty_result(self):
        assert sanitize_username("!!!") is None
        assert sanitize_username(None) is None
        assert sanitize_username("") is None

    def test_sanitize_truncates(self):
        assert len(sanitize_username("a" * 80)) == USERNAME_MAX_LENGTH

    def test_generate_from_email(self):
        username = generate_username("Jane.Doe@example.com")
        base, suffix = username.rsplit("_", 1)
        assert base == "jane.doe"
        assert len(suffix) == 8
        assert all(c in string.hexdigits for c in suffix)

    def test_generate_keeps_suffix_when_truncating(self):
        username = generate_username("x" * 60 + "@example.com")
        assert len(username) <= USERNAME_MAX_LENGTH
        assert len(username.rsplit("_", 1)[1]) == 8

    def test_generate_falls_back_to_user(self):
        assert generate_username("+++@example.com").startswith("user_")


class TestCredentialVault:
    """Test authenticated encryption of shadow passwords."""

    def test_round_trip(self, vault):
        assert vault.decrypt(vault.encrypt("pässwörd!")) == "pässwörd!"

    def test_fresh_nonce_per_encryption(self, vault):
        assert vault.encrypt("same") != vault.encrypt("same")

    def test_ciphertext_layout(self, vault):
        raw = base64.b64decode(vault.encrypt("abc"))
        # nonce, 3 bytes of ciphertext, 16 byte tag
        assert len(raw) == NONCE_SIZE + 3 + 16

    def test_tampered_ciphertext(self, vault):
        raw = bytearray(base64.b64decode(vault.encrypt("secret")))
        raw[NONCE_SIZE] ^= 0x01
        with pytest.raises(DecryptionError):
            vault.decrypt(base64.b64encode(bytes(raw)).decode())

    def test_tampered_tag(self, vault):
        raw = bytearray(base64.b64decode(vault.encrypt("secret")))
        raw[-1] ^= 0xFF
        with pytest.raises(DecryptionError):
            vault.decrypt(base64.b64encode(bytes(raw)).decode())

    def test_wrong_key(self, vault):
        ciphertext = vault.encrypt("secret")
        with pytest.raises(DecryptionError):
            CredentialVault("another-secret").decrypt(ciphertext)

    def test_truncated_input(self, vault):
        with pytest.raises(DecryptionError):
            vault.decrypt(base64.b64encode(b"short").decode())

    def test_not_base64(self, vault):
        with pytest.raises(DecryptionError):
            vault.decrypt("not base64 at all!")

    def test_empty_secret(self):
        with pytest.raises(ConfigurationError):
            CredentialVault("")

    def test_from_settings(self):
        vault = CredentialVault.from_settings(VaultSettings(ENCRYPTION_KEY="k"))
        assert CredentialVault("k").decrypt(vault.encrypt("x")) == "x"

    def test_session_secret_fallback(self):
        with patch.dict(os.environ, {"SESSION_SECRET": "from-session"}, clear=True):
            settings = VaultSettings(_env_file=None)
        assert settings.encryption_key == "from-session"

    def test_from_settings_without_key(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = VaultSettings(_env_file=None)
        with pytest.raises(ConfigurationError):
            CredentialVault.from_settings(settings)

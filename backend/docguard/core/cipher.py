"""
Cipher — reversible encryption of storage credentials at rest.

New values are sealed with AES-GCM and carry a version prefix::

    v1:<base64(nonce || ciphertext+tag)>

Values without a prefix are the legacy base64 XOR encoding.  They stay
readable (when LEGACY_XOR_KEY is configured) so existing rows keep
working; anything re-encrypted is written as v1.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from docguard.core.config import Settings
from docguard.pipeline.errors import ConfigurationError

VERSION_PREFIX = "v1:"
NONCE_BYTES = 12


class CipherError(Exception):
    """Ciphertext could not be decrypted (tampered, wrong key, malformed)."""


class Cipher:
    """AEAD credential cipher with read-only support for legacy XOR values."""

    def __init__(self, key: str, legacy_key: str | None = None) -> None:
        if not key:
            raise ConfigurationError("Credential encryption key is not configured")
        self._aead = AESGCM(hashlib.sha256(key.encode("utf-8")).digest())
        self._legacy_key = legacy_key or None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Cipher":
        return cls(settings.CREDENTIAL_ENCRYPTION_KEY, settings.LEGACY_XOR_KEY)

    def encrypt(self, plaintext: str) -> str:
        """Seal a token.  Empty input is returned unchanged."""
        if not plaintext:
            return plaintext
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return VERSION_PREFIX + base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, value: str) -> str:
        """Open a v1 or legacy value.  Empty input is returned unchanged."""
        if not value:
            return value
        if value.startswith(VERSION_PREFIX):
            return self._decrypt_v1(value[len(VERSION_PREFIX):])
        return self._decrypt_legacy(value)

    @staticmethod
    def is_current(value: str) -> bool:
        """True if the value is already in the current (v1) format."""
        return bool(value) and value.startswith(VERSION_PREFIX)

    def _decrypt_v1(self, encoded: str) -> str:
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CipherError("Malformed ciphertext encoding") from exc
        if len(raw) <= NONCE_BYTES:
            raise CipherError("Ciphertext too short")
        nonce, sealed = raw[:NONCE_BYTES], raw[NONCE_BYTES:]
        try:
            return self._aead.decrypt(nonce, sealed, None).decode("utf-8")
        except InvalidTag as exc:
            raise CipherError("Ciphertext failed authentication") from exc

    def _decrypt_legacy(self, encoded: str) -> str:
        if not self._legacy_key:
            raise CipherError("Legacy ciphertext found but no legacy key is configured")
        try:
            text = base64.b64decode(encoded, validate=True).decode("latin-1")
        except (binascii.Error, ValueError) as exc:
            raise CipherError("Failed to decrypt data") from exc
        key = self._legacy_key
        return "".join(
            chr(ord(ch) ^ ord(key[i % len(key)])) for i, ch in enumerate(text)
        )

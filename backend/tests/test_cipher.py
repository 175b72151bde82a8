"""Tests for credential encryption at rest."""

import pytest

from docguard.core.cipher import Cipher, CipherError
from docguard.pipeline.errors import ConfigurationError

from conftest import legacy_xor_encrypt


class TestCipher:
    def setup_method(self):
        self.cipher = Cipher("primary-key", "legacy")

    def test_round_trip_is_versioned(self):
        sealed = self.cipher.encrypt("ya29.token-value")
        assert sealed.startswith("v1:")
        assert Cipher.is_current(sealed)
        assert self.cipher.decrypt(sealed) == "ya29.token-value"

    def test_nonce_makes_output_differ(self):
        assert self.cipher.encrypt("same") != self.cipher.encrypt("same")

    def test_tampered_ciphertext_is_rejected(self):
        sealed = self.cipher.encrypt("secret")
        tampered = sealed[:-4] + ("AAAA" if not sealed.endswith("AAAA") else "BBBB")
        with pytest.raises(CipherError):
            self.cipher.decrypt(tampered)

    def test_wrong_key_is_rejected(self):
        sealed = Cipher("other-key").encrypt("secret")
        with pytest.raises(CipherError):
            self.cipher.decrypt(sealed)

    def test_legacy_values_stay_readable(self):
        legacy = legacy_xor_encrypt("refresh-token", "legacy")
        assert not Cipher.is_current(legacy)
        assert self.cipher.decrypt(legacy) == "refresh-token"

    def test_legacy_without_legacy_key(self):
        legacy = legacy_xor_encrypt("refresh-token", "legacy")
        with pytest.raises(CipherError):
            Cipher("primary-key").decrypt(legacy)

    def test_empty_values_pass_through(self):
        assert self.cipher.encrypt("") == ""
        assert self.cipher.decrypt("") == ""

    def test_missing_key_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            Cipher("")

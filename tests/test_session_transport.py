"""
Tests for SessionTransport: sealing DEKs into session tokens.
"""
import os
import base64

import pytest

from ledger_vault.exceptions import SessionExpired
from ledger_vault.vault import SessionTransport
from ledger_vault.vault.crypto import decrypt, encrypt


@pytest.fixture
def transport(secret):
    return SessionTransport(secret)


class TestSessionTransport:
    """Tests for seal/open."""

    def test_roundtrip(self, transport, dek):
        """Opening a sealed token returns the same DEK."""
        assert transport.open(transport.seal(dek)) == dek

    def test_token_is_opaque_text(self, transport, dek):
        """The token is ciphertext text that does not contain the DEK."""
        token = transport.seal(dek)
        assert isinstance(token, str)
        assert token.count(":") == 2
        assert dek.hex() not in token

    def test_token_is_base64_of_dek(self, secret, transport, dek):
        """The sealed payload is the base64 text of the DEK."""
        assert decrypt(transport.seal(dek), secret) == base64.b64encode(dek)

    @pytest.mark.parametrize("token", [None, "", "garbage", "a:b:c", "::"])
    def test_invalid_tokens(self, transport, token):
        """Missing, empty or malformed tokens mean the session expired."""
        with pytest.raises(SessionExpired):
            transport.open(token)

    def test_other_secret(self, transport, dek):
        """A token sealed under another secret does not open."""
        other = SessionTransport(os.urandom(32))
        with pytest.raises(SessionExpired):
            transport.open(other.seal(dek))

    def test_payload_not_a_dek(self, secret, transport):
        """A valid ciphertext that is not a wrapped DEK is rejected."""
        with pytest.raises(SessionExpired):
            transport.open(encrypt(b"hello", secret))

    def test_bad_secret_length(self):
        """The secret must match the cipher key size."""
        with pytest.raises(ValueError):
            SessionTransport(b"short")

    def test_bad_dek_length(self, transport):
        """Only 256-bit DEKs are sealed."""
        with pytest.raises(ValueError):
            transport.seal(b"short")

    def test_repr_hides_secret(self, secret, transport):
        """The secret never appears in repr."""
        assert secret.hex() not in repr(transport)
        assert repr(secret) not in repr(transport)

    def test_from_config(self, config, dek):
        """Transports built from the same config interoperate."""
        token = SessionTransport.from_config(config).seal(dek)
        assert SessionTransport.from_config(config).open(token) == dek

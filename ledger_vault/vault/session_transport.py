"""
SessionTransport — Carries a user's DEK inside a client-held token.

The DEK is wrapped under the process-wide session secret so a stateless
request handler can recover it without re-deriving the KEK:

- ``seal(dek)`` — produce an opaque token for the cookie layer
- ``open(token)`` — recover the DEK, or raise ``SessionExpired``

The token holds no server-side state. Its validity window (7 days by
default) is enforced by the cookie's ``max_age``; once the client drops the
token the user must re-enter the password.

Security Note:
    The session secret is a single point of compromise for all tokens.
    It is injected once at startup and never logged or serialized.
"""
import logging
from typing import Optional

from ..exceptions import SessionExpired, MalformedCiphertext, DecryptionFailed
from .config import VaultConfig
from .keys import wrap_dek, unwrap_dek
from .crypto import KEY_LENGTH

logger = logging.getLogger("ledger.vault")


class SessionTransport:
    """Wraps and unwraps DEKs under the process-wide session secret."""

    __slots__ = ("_secret",)

    def __init__(self, secret: bytes):
        if len(secret) != KEY_LENGTH:
            raise ValueError(
                f"Session secret must be exactly {KEY_LENGTH} bytes"
            )
        self._secret = secret

    def __repr__(self) -> str:
        return "<SessionTransport>"

    @classmethod
    def from_config(cls, config: VaultConfig) -> "SessionTransport":
        return cls(config.session_secret)

    def seal(self, dek: bytes) -> str:
        """Wrap a DEK for transport in the session cookie.

        Args:
            dek: Plaintext 32-byte DEK.

        Returns:
            Opaque session token.
        """
        if len(dek) != KEY_LENGTH:
            raise ValueError(f"DEK must be exactly {KEY_LENGTH} bytes")
        return wrap_dek(dek, self._secret)

    def open(self, token: Optional[str]) -> bytes:
        """Recover the DEK from a session token.

        Args:
            token: Token previously returned by :meth:`seal`.

        Returns:
            Plaintext 32-byte DEK.

        Raises:
            SessionExpired: If the token is missing, empty or cannot be opened.
        """
        if not token:
            raise SessionExpired()
        try:
            return unwrap_dek(token, self._secret)
        except (MalformedCiphertext, DecryptionFailed) as err:
            logger.debug("Rejected session token: %s", type(err).__name__)
            raise SessionExpired() from None

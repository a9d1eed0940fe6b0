"""
aiohttp integration for the vault session cookie.

- ``setup_vault(app)`` loads the configuration at startup; a missing session
  secret stops the application from starting.
- ``start_session(...)`` bootstraps the DEK from a login password and sets
  the cookie on the response.
- ``get_request_dek(request)`` opens the cookie on every later request.
- ``clear_session_cookie(response)`` is used on sign-out.
- ``vault_middleware`` maps vault errors to HTTP responses.
"""
import logging
from typing import Any, Optional

from aiohttp import web

from .conf import VAULT_CONFIG, VAULT_TRANSPORT, VAULT_DEK
from .exceptions import (
    DecryptionFailed,
    InvalidFieldValue,
    InvalidPassword,
    KeyMaterialMissing,
    MalformedCiphertext,
    SessionExpired,
)
from .storage import AbstractRecordStore
from .vault import SessionKeys, SessionTransport, VaultConfig, bootstrap_session

logger = logging.getLogger("ledger.web")

config_key = web.AppKey(VAULT_CONFIG, VaultConfig)
transport_key = web.AppKey(VAULT_TRANSPORT, SessionTransport)


def setup_vault(
    app: web.Application,
    config: Optional[VaultConfig] = None,
) -> VaultConfig:
    """Attach vault configuration and session transport to an application.

    Raises:
        KeyMaterialMissing: If no config is given and COOKIE_SECRET is unusable.
    """
    if config is None:
        config = VaultConfig.from_env()
    app[config_key] = config
    app[transport_key] = SessionTransport.from_config(config)
    logger.info(
        "Vault ready (cookie=%s, max_age=%ds)",
        config.cookie_name, config.session_max_age,
    )
    return config


def _vault_config(app: web.Application) -> VaultConfig:
    try:
        return app[config_key]
    except KeyError:
        raise KeyMaterialMissing(
            "Vault is not configured; call setup_vault() at startup"
        ) from None


def set_session_cookie(
    response: web.StreamResponse,
    token: str,
    config: VaultConfig,
) -> None:
    """Store the session token client-side for ``session_max_age`` seconds."""
    response.set_cookie(
        config.cookie_name,
        token,
        max_age=config.session_max_age,
        httponly=True,
        secure=config.cookie_secure,
        samesite="Lax",
        path="/",
    )


def clear_session_cookie(response: web.StreamResponse, config: VaultConfig) -> None:
    response.del_cookie(config.cookie_name, path="/")


async def start_session(
    request: web.Request,
    response: web.StreamResponse,
    store: AbstractRecordStore,
    user_id: Any,
    password: str,
) -> SessionKeys:
    """Bootstrap the user's DEK and hand the sealed token to the client.

    Raises:
        InvalidPassword: If the password does not open the stored DEK.
    """
    config = _vault_config(request.app)
    keys = await bootstrap_session(store, user_id, password, config)
    set_session_cookie(response, keys.token, config)
    request[VAULT_DEK] = keys.dek
    return keys


def get_request_dek(request: web.Request) -> bytes:
    """Return the DEK carried by the request's session cookie.

    The DEK is cached on the request for the rest of its handling.

    Raises:
        SessionExpired: If the cookie is missing or cannot be opened.
    """
    dek = request.get(VAULT_DEK)
    if dek is not None:
        return dek
    config = _vault_config(request.app)
    transport: SessionTransport = request.app[transport_key]
    dek = transport.open(request.cookies.get(config.cookie_name))
    request[VAULT_DEK] = dek
    return dek


@web.middleware
async def vault_middleware(request: web.Request, handler):
    """Translate vault errors into responses.

    Expired sessions answer 401 with ``reauthenticate``; wrong passwords
    answer 403.
    """
    try:
        return await handler(request)
    except SessionExpired:
        return web.json_response(
            {"error": "encryption_session_expired", "reauthenticate": True},
            status=401,
        )
    except InvalidPassword:
        return web.json_response({"error": "invalid_password"}, status=403)
    except (DecryptionFailed, MalformedCiphertext, InvalidFieldValue):
        return web.json_response(
            {"error": "could_not_decrypt_record"}, status=422,
        )

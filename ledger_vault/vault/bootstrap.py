"""
Vault Bootstrap — Turn a verified login password into a session token.

On the first bootstrap for a user without stored key material a salt and
DEK are provisioned and persisted; afterwards the stored DEK is unwrapped.
Either way the DEK is sealed for the session cookie.

PBKDF2 runs in the default executor so the event loop keeps serving other
requests while a KEK is derived.

Security Note:
    The password and KEK never leave these calls. Never log them.
"""
import base64
import asyncio
import logging
import binascii
import functools
from typing import Any, NamedTuple

from ..conf import USERS, SALT_FIELD, WRAPPED_DEK_FIELD
from ..exceptions import (
    DecryptionFailed,
    InvalidPassword,
    MalformedCiphertext,
    UserNotFound,
    VaultError,
)
from ..storage import AbstractRecordStore
from .config import VaultConfig
from .keys import provision_new_user, unwrap_existing_user, rewrap_for_password
from .session_transport import SessionTransport

logger = logging.getLogger("ledger.vault")


class SessionKeys(NamedTuple):
    """Result of a successful bootstrap."""
    dek: bytes
    token: str
    provisioned: bool


async def _run_blocking(func, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


async def _load_user(store: AbstractRecordStore, user_id: Any) -> dict:
    user = await store.get(USERS, user_id)
    if user is None:
        raise UserNotFound(f"User {user_id!r} not found")
    return user


def _stored_key_material(user: dict) -> tuple[bytes, str] | None:
    """Return (salt, wrapped_dek) or None when the user has none yet."""
    salt = user.get(SALT_FIELD)
    wrapped = user.get(WRAPPED_DEK_FIELD)
    if not salt or not wrapped:
        return None
    try:
        return base64.b64decode(salt, validate=True), wrapped
    except (binascii.Error, ValueError):
        raise MalformedCiphertext("Stored salt is not valid base64") from None


async def bootstrap_session(
    store: AbstractRecordStore,
    user_id: Any,
    password: str,
    config: VaultConfig,
) -> SessionKeys:
    """Obtain the user's DEK from the password and seal it for the session.

    Args:
        store: Record store holding the ``users`` record.
        user_id: Authenticated user id.
        password: The user's login password.
        config: Vault configuration.

    Returns:
        SessionKeys(dek, token, provisioned).

    Raises:
        UserNotFound: If no user record exists.
        InvalidPassword: If the password does not open the stored DEK.
    """
    user = await _load_user(store, user_id)
    material = _stored_key_material(user)

    if material is None:
        keys = await _run_blocking(
            provision_new_user,
            password,
            iterations=config.pbkdf2_iterations,
            salt_size=config.salt_size,
        )
        await store.update(USERS, user_id, {
            SALT_FIELD: base64.b64encode(keys.salt).decode("ascii"),
            WRAPPED_DEK_FIELD: keys.wrapped_dek,
        })
        dek = keys.dek
        provisioned = True
        logger.info("Provisioned encryption keys for user=%s", user_id)
    else:
        salt, wrapped = material
        try:
            dek = await _run_blocking(
                unwrap_existing_user,
                password, salt, wrapped,
                iterations=config.pbkdf2_iterations,
            )
        except DecryptionFailed:
            logger.warning("Encryption bootstrap failed for user=%s", user_id)
            raise InvalidPassword() from None
        provisioned = False

    token = SessionTransport.from_config(config).seal(dek)
    return SessionKeys(dek, token, provisioned)


async def rewrap_user_key(
    store: AbstractRecordStore,
    user_id: Any,
    old_password: str,
    new_password: str,
    config: VaultConfig,
) -> None:
    """Re-wrap the user's DEK after a password change.

    The salt and wrapped DEK are replaced in a single update. Nothing is
    written if the old password is wrong.

    Raises:
        UserNotFound: If no user record exists.
        InvalidPassword: If ``old_password`` does not open the stored DEK.
        VaultError: If the user has no key material to re-wrap.
    """
    user = await _load_user(store, user_id)
    material = _stored_key_material(user)
    if material is None:
        raise VaultError(
            f"User {user_id!r} has no encryption keys to re-wrap"
        )
    salt, wrapped = material
    try:
        keys = await _run_blocking(
            rewrap_for_password,
            old_password, new_password, salt, wrapped,
            iterations=config.pbkdf2_iterations,
            salt_size=config.salt_size,
        )
    except DecryptionFailed:
        logger.warning("Key re-wrap rejected for user=%s", user_id)
        raise InvalidPassword() from None
    await store.update(USERS, user_id, {
        SALT_FIELD: base64.b64encode(keys.salt).decode("ascii"),
        WRAPPED_DEK_FIELD: keys.wrapped_dek,
    })
    logger.info("Re-wrapped encryption keys for user=%s", user_id)

"""
Tests for the aiohttp session cookie adapter.
"""
import json
import os
from decimal import Decimal

import pytest
from aiohttp import web
from aiohttp.test_utils import make_mocked_request

from ledger_vault.exceptions import (
    DecryptionFailed,
    InvalidFieldValue,
    InvalidPassword,
    KeyMaterialMissing,
    SessionExpired,
)
from ledger_vault.vault import (
    SessionTransport,
    VaultConfig,
    decrypt_field,
    encrypt_field,
)
from ledger_vault.web import (
    clear_session_cookie,
    get_request_dek,
    set_session_cookie,
    setup_vault,
    start_session,
    vault_middleware,
)


@pytest.fixture
def app(config):
    application = web.Application()
    setup_vault(application, config)
    return application


def _request(app, token=None, cookie_name="encryption_dek"):
    headers = {"Cookie": f"{cookie_name}={token}"} if token else {}
    return make_mocked_request("GET", "/wallets", headers=headers, app=app)


class TestSetup:
    """Tests for setup_vault."""

    def test_missing_secret_is_fatal(self, monkeypatch):
        monkeypatch.delenv("COOKIE_SECRET", raising=False)
        with pytest.raises(KeyMaterialMissing):
            setup_vault(web.Application())

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("COOKIE_SECRET", os.urandom(32).hex())
        config = setup_vault(web.Application())
        assert config.cookie_name == "encryption_dek"

    def test_unconfigured_app(self):
        request = make_mocked_request("GET", "/", app=web.Application())
        with pytest.raises(KeyMaterialMissing):
            get_request_dek(request)


class TestCookie:
    """Tests for the cookie attributes."""

    def test_set_cookie_attributes(self, config):
        response = web.Response()
        set_session_cookie(response, "token-value", config)
        morsel = response.cookies["encryption_dek"]
        assert morsel.value == "token-value"
        assert morsel["httponly"] is True
        assert morsel["samesite"] == "Lax"
        assert morsel["path"] == "/"
        assert int(morsel["max-age"]) == 7 * 24 * 60 * 60
        assert not morsel["secure"]

    def test_secure_cookie(self, secret):
        config = VaultConfig(session_secret=secret, cookie_secure=True)
        response = web.Response()
        set_session_cookie(response, "t", config)
        assert response.cookies["encryption_dek"]["secure"] is True

    def test_clear_cookie(self, config):
        response = web.Response()
        clear_session_cookie(response, config)
        morsel = response.cookies["encryption_dek"]
        assert morsel.value == ""
        assert int(morsel["max-age"]) == 0


class TestRequestDek:
    """Tests for get_request_dek."""

    def test_opens_cookie(self, app, config, dek):
        token = SessionTransport.from_config(config).seal(dek)
        assert get_request_dek(_request(app, token)) == dek

    def test_missing_cookie(self, app):
        """Without the cookie (e.g. after it expired) the session is gone."""
        with pytest.raises(SessionExpired):
            get_request_dek(_request(app))

    def test_garbage_cookie(self, app):
        with pytest.raises(SessionExpired):
            get_request_dek(_request(app, "garbage"))

    def test_cached_on_request(self, app, config, dek):
        request = _request(app, SessionTransport.from_config(config).seal(dek))
        first = get_request_dek(request)
        assert get_request_dek(request) is first


class TestStartSession:
    """Tests for start_session."""

    @pytest.mark.asyncio
    async def test_sets_cookie(self, app, store, config):
        request = _request(app)
        response = web.Response()
        keys = await start_session(request, response, store, "u1", "correct horse")
        assert response.cookies["encryption_dek"].value == keys.token
        assert get_request_dek(request) == keys.dek

    @pytest.mark.asyncio
    async def test_next_request_reads_balance(self, app, store, config):
        response = web.Response()
        keys = await start_session(_request(app), response, store, "u1", "pw")
        await store.update("wallets", "w1", {"balance": encrypt_field(1234.56, keys.dek)})

        token = response.cookies["encryption_dek"].value
        dek = get_request_dek(_request(app, token))
        balance = decrypt_field((await store.get("wallets", "w1"))["balance"], dek)
        assert balance == Decimal("1234.56")

    @pytest.mark.asyncio
    async def test_wrong_password(self, app, store):
        await start_session(_request(app), web.Response(), store, "u1", "pw")
        with pytest.raises(InvalidPassword):
            await start_session(_request(app), web.Response(), store, "u1", "bad")


class TestMiddleware:
    """Tests for vault_middleware."""

    @staticmethod
    def _raising(exc):
        async def handler(request):
            raise exc
        return handler

    @pytest.mark.asyncio
    async def test_session_expired(self, app):
        response = await vault_middleware(_request(app), self._raising(SessionExpired()))
        assert response.status == 401
        assert json.loads(response.text) == {
            "error": "encryption_session_expired", "reauthenticate": True,
        }

    @pytest.mark.asyncio
    async def test_invalid_password(self, app):
        response = await vault_middleware(_request(app), self._raising(InvalidPassword()))
        assert response.status == 403
        assert json.loads(response.text)["error"] == "invalid_password"

    @pytest.mark.asyncio
    async def test_decryption_failed(self, app):
        response = await vault_middleware(_request(app), self._raising(DecryptionFailed()))
        assert response.status == 422
        assert json.loads(response.text)["error"] == "could_not_decrypt_record"

    @pytest.mark.asyncio
    async def test_invalid_field_value(self, app):
        """An unparsable stored amount is scoped to the record."""
        response = await vault_middleware(
            _request(app), self._raising(InvalidFieldValue("Value is not a number")),
        )
        assert response.status == 422
        assert json.loads(response.text)["error"] == "could_not_decrypt_record"

    @pytest.mark.asyncio
    async def test_passthrough(self, app):
        async def handler(request):
            return web.json_response({"ok": True})
        response = await vault_middleware(_request(app), handler)
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, app):
        with pytest.raises(ZeroDivisionError):
            await vault_middleware(_request(app), self._raising(ZeroDivisionError()))

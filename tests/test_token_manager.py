"""Tests for OAuth sign-in and token refresh"""

import asyncio
import dataclasses
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from config.settings_store import OAuthSettings
from core.errors import AuthError, ConfigError
from oauth import OAuthTokenState, TokenManager, challenge_for

NOW = 1_000_000.0


@pytest.fixture
def oauth_settings():
    return OAuthSettings(
        client_id="client-123",
        auth_url="https://auth.example.test/authorize",
        token_url="https://auth.example.test/token",
        scope="openid offline_access",
        redirect_uri="http://localhost:1455/auth/callback",
    )


def token_response(access_token="new-access", refresh_token="new-refresh", expires_in=3600):
    payload = {"access_token": access_token, "token_type": "Bearer", "expires_in": expires_in}
    if refresh_token:
        payload["refresh_token"] = refresh_token
    return httpx.Response(200, json=payload)


def form_of(request: httpx.Request):
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@pytest.fixture
def make_manager(recording_client, token_storage):
    def _make(handler, clock=lambda: NOW):
        client, recorder = recording_client(handler)
        return TokenManager(storage=token_storage, http_client=client, clock=clock), recorder

    return _make


def store_state(manager, **fields):
    state = OAuthTokenState(**{"access_token": "old-access", "refresh_token": "old-refresh", **fields})
    manager.storage.save_tokens(state.to_dict())
    return state


class TestAuthorization:

    def test_authorization_url_parameters(self, make_manager, oauth_settings):
        manager, _ = make_manager(lambda request: token_response())
        url, pending = manager.begin_authorization(oauth_settings)

        parsed = urlparse(url)
        params = {key: values[0] for key, values in parse_qs(parsed.query).items()}
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == oauth_settings.auth_url
        assert params["response_type"] == "code"
        assert params["client_id"] == "client-123"
        assert params["redirect_uri"] == oauth_settings.redirect_uri
        assert params["scope"] == "openid offline_access"
        assert params["state"] == pending.state
        assert params["code_challenge_method"] == "S256"
        assert params["code_challenge"] == challenge_for(pending.code_verifier)
        assert "=" not in params["code_challenge"]

    def test_each_attempt_gets_fresh_state(self, make_manager, oauth_settings):
        manager, _ = make_manager(lambda request: token_response())
        _, first = manager.begin_authorization(oauth_settings)
        _, second = manager.begin_authorization(oauth_settings)
        assert first.state != second.state
        assert first.code_verifier != second.code_verifier

    def test_missing_client_id_is_config_error(self, make_manager, oauth_settings):
        manager, _ = make_manager(lambda request: token_response())
        with pytest.raises(ConfigError):
            manager.begin_authorization(oauth_settings.model_copy(update={"client_id": ""}))

    def test_pending_authorization_carries_exchange_inputs(self, make_manager, oauth_settings):
        manager, _ = make_manager(lambda request: token_response())
        _, pending = manager.begin_authorization(oauth_settings)

        assert {field.name for field in dataclasses.fields(pending)} == {
            "state", "code_verifier", "redirect_uri", "client_id", "token_url", "scope",
        }
        assert pending.redirect_uri == oauth_settings.redirect_uri
        assert pending.token_url == oauth_settings.token_url

    def test_known_pkce_challenge(self):
        # RFC 7636 appendix B
        verifier = "dBjftJeZ4CVP-mJ92K9sRuyF7UtTZ4xeOjaZ3nWz7p8"
        assert challenge_for(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    @pytest.mark.asyncio
    async def test_complete_authorization_exchanges_code(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response(expires_in=1800))
        _, pending = manager.begin_authorization(oauth_settings)

        state = await manager.complete_authorization(
            f"http://localhost:1455/auth/callback?code=abc&state={pending.state}", pending
        )

        assert state.access_token == "new-access"
        assert state.refresh_token == "new-refresh"
        assert state.expires_at == NOW + 1800

        request = recorder.requests[0]
        assert str(request.url) == oauth_settings.token_url
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert form_of(request) == {
            "grant_type": "authorization_code",
            "code": "abc",
            "redirect_uri": oauth_settings.redirect_uri,
            "client_id": "client-123",
            "code_verifier": pending.code_verifier,
        }
        assert manager.load_state() == state

    @pytest.mark.asyncio
    async def test_state_mismatch_never_calls_token_endpoint(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        _, pending = manager.begin_authorization(oauth_settings)

        with pytest.raises(AuthError):
            await manager.complete_authorization("http://localhost:1455/auth/callback?code=abc&state=evil", pending)

        assert recorder.requests == []
        assert manager.load_state() is None

    @pytest.mark.asyncio
    async def test_error_param_is_auth_error(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        _, pending = manager.begin_authorization(oauth_settings)

        with pytest.raises(AuthError) as exc_info:
            await manager.complete_authorization(
                f"http://localhost:1455/auth/callback?error=access_denied&state={pending.state}", pending
            )
        assert "access_denied" in str(exc_info.value)
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_missing_code_is_auth_error(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        _, pending = manager.begin_authorization(oauth_settings)

        with pytest.raises(AuthError):
            await manager.complete_authorization(f"http://localhost:1455/auth/callback?state={pending.state}", pending)
        assert recorder.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(400, json={"error": "invalid_grant"}),
            httpx.Response(200, text="<html>oops</html>"),
            httpx.Response(200, json={"token_type": "Bearer"}),
        ],
    )
    async def test_bad_token_response_is_auth_error(self, make_manager, oauth_settings, response):
        manager, _ = make_manager(lambda request: response)
        _, pending = manager.begin_authorization(oauth_settings)

        with pytest.raises(AuthError):
            await manager.complete_authorization(
                f"http://localhost:1455/auth/callback?code=abc&state={pending.state}", pending
            )

    @pytest.mark.asyncio
    async def test_sign_in_uses_launcher(self, make_manager, oauth_settings):
        manager, _ = make_manager(lambda request: token_response())

        class FakeLauncher:
            def __init__(self):
                self.urls = []

            async def launch_interactive_auth(self, authorization_url):
                self.urls.append(authorization_url)
                state = parse_qs(urlparse(authorization_url).query)["state"][0]
                return f"http://localhost:1455/auth/callback?code=xyz&state={state}"

        launcher = FakeLauncher()
        state = await manager.sign_in(oauth_settings, launcher)

        assert len(launcher.urls) == 1
        assert state.access_token == "new-access"


class TestEnsureFreshToken:

    @pytest.mark.asyncio
    async def test_token_far_from_expiry_needs_no_network(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        store_state(manager, expires_at=NOW + 600)

        token = await manager.ensure_fresh_token(oauth_settings=oauth_settings)

        assert token == "old-access"
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_token_near_expiry_is_refreshed(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        store_state(manager, expires_at=NOW + 30)

        token = await manager.ensure_fresh_token(oauth_settings=oauth_settings)

        assert token == "new-access"
        assert len(recorder.requests) == 1
        assert form_of(recorder.requests[0]) == {
            "grant_type": "refresh_token",
            "refresh_token": "old-refresh",
            "client_id": "client-123",
            "scope": "openid offline_access",
        }
        assert manager.load_state().expires_at == NOW + 3600

    @pytest.mark.asyncio
    async def test_refresh_without_new_refresh_token_keeps_old_one(self, make_manager, oauth_settings):
        manager, _ = make_manager(lambda request: token_response(refresh_token=None))
        store_state(manager, expires_at=NOW - 10)

        await manager.ensure_fresh_token(oauth_settings=oauth_settings)

        assert manager.load_state().refresh_token == "old-refresh"

    @pytest.mark.asyncio
    async def test_explicit_state_is_used(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        state = OAuthTokenState(access_token="given", expires_at=NOW + 3600)

        assert await manager.ensure_fresh_token(state, oauth_settings) == "given"
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_expired_without_refresh_token_signs_out(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        store_state(manager, refresh_token=None, expires_at=NOW - 1)

        assert await manager.ensure_fresh_token(oauth_settings=oauth_settings) is None
        assert recorder.requests == []
        assert manager.load_state() is None

    @pytest.mark.asyncio
    async def test_failed_refresh_clears_session(self, make_manager, oauth_settings):
        manager, _ = make_manager(lambda request: httpx.Response(401, json={"error": "invalid_grant"}))
        store_state(manager, expires_at=NOW + 5)

        assert await manager.ensure_fresh_token(oauth_settings=oauth_settings) is None
        assert manager.load_state() is None

    @pytest.mark.asyncio
    async def test_signed_out_returns_none(self, make_manager, oauth_settings):
        manager, recorder = make_manager(lambda request: token_response())
        assert await manager.ensure_fresh_token(oauth_settings=oauth_settings) is None
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, make_manager, oauth_settings):
        async def slow_handler(request):
            await asyncio.sleep(0.05)
            return token_response()

        manager, recorder = make_manager(slow_handler)
        store_state(manager, expires_at=NOW + 10)

        tokens = await asyncio.gather(
            *(manager.ensure_fresh_token(oauth_settings=oauth_settings) for _ in range(5))
        )

        assert tokens == ["new-access"] * 5
        assert len(recorder.requests) == 1


class TestSessionLifecycle:

    def test_clear_session_is_idempotent(self, make_manager):
        manager, _ = make_manager(lambda request: token_response())
        store_state(manager, expires_at=NOW + 100)

        manager.clear_session()
        manager.clear_session()

        assert manager.load_state() is None
        assert manager.status()["has_tokens"] is False

    def test_status_hides_secrets(self, make_manager):
        manager, _ = make_manager(lambda request: token_response())
        store_state(manager, expires_at=NOW + 7200, scope="openid")

        status = manager.status()

        assert status["has_tokens"] is True
        assert status["is_expired"] is False
        assert status["time_until_expiry"] == "2h 0m"
        assert "old-access" not in json.dumps(status)
        assert "old-refresh" not in json.dumps(status)

    def test_corrupt_token_file_means_signed_out(self, make_manager):
        manager, _ = make_manager(lambda request: token_response())
        manager.storage.token_file.write_text("{not json")
        assert manager.load_state() is None

    def test_token_file_permissions(self, make_manager):
        import os
        import platform

        manager, _ = make_manager(lambda request: token_response())
        store_state(manager, expires_at=NOW + 100)

        if platform.system() != "Windows":
            assert os.stat(manager.storage.token_file).st_mode & 0o777 == 0o600

"""Shared fixtures for gateway tests"""

from typing import Callable, List

import httpx
import pytest

from config.settings_store import GatewaySettings
from gateway import Gateway
from oauth import TokenManager
from utils.storage import TokenStorage


@pytest.fixture
def make_settings() -> Callable[..., GatewaySettings]:
    """Build GatewaySettings with sensible test defaults"""

    def _make(**overrides) -> GatewaySettings:
        values = dict(
            provider_id="ollama",
            base_url_by_provider={"oauth_openai": "https://llm.example.test"},
            model_by_provider={
                "ollama": "llama3",
                "open_webui": "llama3:8b",
                "openai": "gpt-4o-mini",
                "openrouter": "openai/gpt-4o-mini",
                "oauth_openai": "gpt-4o-mini",
            },
            api_key_by_provider={"openai": "sk-test", "openrouter": "or-test"},
            oauth_client_id="client-123",
            oauth_auth_url="https://auth.example.test/authorize",
            oauth_token_url="https://auth.example.test/token",
            oauth_scope="openid offline_access",
            oauth_redirect_uri="http://localhost:1455/auth/callback",
        )
        values.update(overrides)
        return GatewaySettings(**values)

    return _make


@pytest.fixture
def token_storage(tmp_path) -> TokenStorage:
    return TokenStorage(str(tmp_path / "auth" / "tokens.json"))


class RecordingTransport:
    """Wraps a handler and records every request it receives"""

    def __init__(self, handler):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request):
        self.requests.append(request)
        result = self.handler(request)
        if hasattr(result, "__await__"):
            result = await result
        return result


@pytest.fixture
def recording_client():
    """Factory returning (AsyncClient, RecordingTransport) for a handler"""

    def _make(handler):
        recorder = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return client, recorder

    return _make


@pytest.fixture
def make_gateway(recording_client, token_storage, tmp_path):
    """Factory returning (Gateway, RecordingTransport) for a handler"""

    def _make(handler, clock=None):
        client, recorder = recording_client(handler)
        token_manager = TokenManager(
            storage=token_storage,
            http_client=client,
            clock=clock or (lambda: 1_000_000.0),
        )
        gateway = Gateway(
            http_client=client,
            token_manager=token_manager,
            stream_trace_enabled=False,
            stream_trace_dir=str(tmp_path / "traces"),
        )
        return gateway, recorder

    return _make

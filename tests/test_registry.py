"""Tests for the provider capability table"""

import pytest

from core.errors import ConfigError
from providers.registry import AuthStyle, StreamFormat, available_providers, capabilities_of


class TestCapabilities:
    """Lookup of provider rows"""

    def test_ollama_row(self):
        provider = capabilities_of("ollama")
        assert provider.auth_style == AuthStyle.NONE
        assert provider.stream_format == StreamFormat.NDJSON
        assert provider.chat_url("http://localhost:11434") == "http://localhost:11434/api/generate"
        assert provider.models_url("http://localhost:11434") == "http://localhost:11434/api/tags"
        assert provider.supports_web_search is False

    def test_open_webui_row(self):
        provider = capabilities_of("open_webui")
        assert provider.auth_style == AuthStyle.API_KEY
        assert provider.stream_format == StreamFormat.SSE_OPENAI
        assert provider.chat_url("http://host:3000/") == "http://host:3000/api/chat/completions"
        assert provider.models_url("http://host:3000") == "http://host:3000/api/models"
        assert provider.supports_web_search is True

    def test_oauth_provider_has_no_default_base_url(self):
        provider = capabilities_of("oauth_openai")
        assert provider.auth_style == AuthStyle.OAUTH
        assert provider.base_url == ""

    def test_unknown_provider_raises_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            capabilities_of("nope")
        assert "nope" in str(exc_info.value)

    def test_available_providers_sorted(self):
        providers = available_providers()
        assert providers == sorted(providers)
        assert {"ollama", "open_webui", "openai", "openrouter", "oauth_openai"} <= set(providers)

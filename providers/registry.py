"""Provider capability table

Every provider-specific decision (auth style, endpoints, streaming format,
web-search support) is read from this table instead of branching on the
provider id at call sites.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from core.errors import ConfigError

logger = logging.getLogger(__name__)


class AuthStyle(str, Enum):
    NONE = "none"
    API_KEY = "api_key"
    OAUTH = "oauth"


class StreamFormat(str, Enum):
    NDJSON = "ndjson"
    SSE_OPENAI = "sse-openai"


@dataclass(frozen=True)
class ProviderConfig:
    """Static capabilities of a backend

    Endpoint templates are formatted with ``base`` (the base URL without a
    trailing slash).
    """
    id: str
    display_name: str
    auth_style: AuthStyle
    base_url: str
    chat_endpoint_template: str
    models_endpoint_template: str
    stream_format: StreamFormat
    supports_web_search: bool = False

    def chat_url(self, base_url: str) -> str:
        return self.chat_endpoint_template.format(base=base_url.rstrip("/"))

    def models_url(self, base_url: str) -> str:
        return self.models_endpoint_template.format(base=base_url.rstrip("/"))


PROVIDER_REGISTRY: Dict[str, ProviderConfig] = {}


def _register_provider(config: ProviderConfig) -> None:
    """Register a provider row"""
    existing = PROVIDER_REGISTRY.get(config.id)
    if existing and existing != config:
        logger.debug("Overwriting provider registry entry for %s", config.id)
    PROVIDER_REGISTRY[config.id] = config


_register_provider(ProviderConfig(
    id="ollama",
    display_name="Ollama (local)",
    auth_style=AuthStyle.NONE,
    base_url="http://localhost:11434",
    chat_endpoint_template="{base}/api/generate",
    models_endpoint_template="{base}/api/tags",
    stream_format=StreamFormat.NDJSON,
))

_register_provider(ProviderConfig(
    id="open_webui",
    display_name="Open WebUI",
    auth_style=AuthStyle.API_KEY,
    base_url="http://localhost:3000",
    chat_endpoint_template="{base}/api/chat/completions",
    models_endpoint_template="{base}/api/models",
    stream_format=StreamFormat.SSE_OPENAI,
    supports_web_search=True,
))

_register_provider(ProviderConfig(
    id="openai",
    display_name="OpenAI",
    auth_style=AuthStyle.API_KEY,
    base_url="https://api.openai.com",
    chat_endpoint_template="{base}/v1/chat/completions",
    models_endpoint_template="{base}/v1/models",
    stream_format=StreamFormat.SSE_OPENAI,
))

_register_provider(ProviderConfig(
    id="openrouter",
    display_name="OpenRouter",
    auth_style=AuthStyle.API_KEY,
    base_url="https://openrouter.ai/api",
    chat_endpoint_template="{base}/v1/chat/completions",
    models_endpoint_template="{base}/v1/models",
    stream_format=StreamFormat.SSE_OPENAI,
    supports_web_search=True,
))

# Base URL has no default: the OAuth-protected server is user supplied
_register_provider(ProviderConfig(
    id="oauth_openai",
    display_name="OpenAI-compatible (OAuth)",
    auth_style=AuthStyle.OAUTH,
    base_url="",
    chat_endpoint_template="{base}/v1/chat/completions",
    models_endpoint_template="{base}/v1/models",
    stream_format=StreamFormat.SSE_OPENAI,
))


def capabilities_of(provider_id: str) -> ProviderConfig:
    """Look up a provider's capabilities

    Args:
        provider_id: Registered provider id

    Returns:
        The provider's ProviderConfig

    Raises:
        ConfigError: If the provider id is unknown
    """
    try:
        return PROVIDER_REGISTRY[provider_id]
    except KeyError:
        known = ", ".join(sorted(PROVIDER_REGISTRY))
        raise ConfigError(f"Unknown provider '{provider_id}'. Known providers: {known}") from None


def available_providers() -> List[str]:
    """Return registered provider ids in a stable order"""
    return sorted(PROVIDER_REGISTRY)

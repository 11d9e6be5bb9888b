"""
Provider capabilities, dialects and request construction.
Adding a provider means adding a registry row and, when its wire format
differs, a dialect class.
"""
from providers.registry import (
    AuthStyle,
    ProviderConfig,
    StreamFormat,
    available_providers,
    capabilities_of,
)
from providers.base_provider import BaseProvider
from providers.ollama_provider import OllamaProvider
from providers.openai_provider import OpenAIProvider, OpenRouterProvider, OpenWebUIProvider
from providers.request_builder import RequestBuilder, get_provider_dialect

__all__ = [
    "AuthStyle",
    "ProviderConfig",
    "StreamFormat",
    "available_providers",
    "capabilities_of",
    "BaseProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "OpenWebUIProvider",
    "RequestBuilder",
    "get_provider_dialect",
]

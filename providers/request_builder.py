"""
Request construction for chat and model-listing calls.
Turns a ChatRequest plus a provider's capability row into a concrete
{url, headers, body} call.
"""
import logging
from typing import Dict, Optional

from core.errors import ConfigError
from core.models import AuthMaterial, ChatRequest, HttpCall
from headers import ACCEPT_JSON, ACCEPT_STREAM, BASE_HEADERS
from providers.base_provider import BaseProvider
from providers.ollama_provider import OllamaProvider
from providers.openai_provider import OpenAIProvider, OpenRouterProvider, OpenWebUIProvider
from providers.registry import AuthStyle, ProviderConfig

logger = logging.getLogger(__name__)

# Dialect per provider id; providers without an entry use the OpenAI dialect
PROVIDER_DIALECTS = {
    "ollama": OllamaProvider,
    "open_webui": OpenWebUIProvider,
    "openrouter": OpenRouterProvider,
}


def get_provider_dialect(provider: ProviderConfig) -> BaseProvider:
    """Return the dialect implementation for a provider"""
    dialect_cls = PROVIDER_DIALECTS.get(provider.id, OpenAIProvider)
    return dialect_cls(provider)


class RequestBuilder:
    """Builds HTTP calls for a provider"""

    def build_chat_call(
        self,
        request: ChatRequest,
        provider: ProviderConfig,
        auth: Optional[AuthMaterial] = None,
        base_url: Optional[str] = None,
        stream: bool = True,
    ) -> HttpCall:
        """Build the chat/generate call

        Args:
            request: Normalized chat request (not modified)
            provider: Provider capability row
            auth: Resolved credential, if any
            base_url: Base URL override from settings (falls back to the provider default)
            stream: Ask the backend to stream its answer

        Returns:
            HttpCall with url, headers and JSON body

        Raises:
            ConfigError: If the model or the base URL is empty
        """
        if not request.model:
            raise ConfigError("No model selected. Choose a model for this provider first.")
        resolved_base = self._resolve_base_url(provider, base_url)

        dialect = get_provider_dialect(provider)
        body = dialect.build_body(request, stream=stream)

        if request.use_internet:
            if provider.supports_web_search:
                body.update(dialect.web_search_fields())
            else:
                logger.debug(f"Provider {provider.id} has no web search support, ignoring use_internet")

        headers = self._build_headers(provider, dialect, auth, accept=ACCEPT_STREAM if stream else ACCEPT_JSON)
        return HttpCall(url=provider.chat_url(resolved_base), headers=headers, body=body)

    def build_completion_call(
        self,
        request: ChatRequest,
        provider: ProviderConfig,
        auth: Optional[AuthMaterial] = None,
        base_url: Optional[str] = None,
    ) -> HttpCall:
        """Build a non-streaming chat call (used for test chats)"""
        return self.build_chat_call(request, provider, auth, base_url=base_url, stream=False)

    def build_models_call(
        self,
        provider: ProviderConfig,
        auth: Optional[AuthMaterial] = None,
        base_url: Optional[str] = None,
    ) -> HttpCall:
        """Build the model-listing call (GET, no body)

        Raises:
            ConfigError: If the base URL is empty
        """
        resolved_base = self._resolve_base_url(provider, base_url)
        dialect = get_provider_dialect(provider)
        headers = self._build_headers(provider, dialect, auth, accept=ACCEPT_JSON)
        return HttpCall(url=provider.models_url(resolved_base), headers=headers, body=None)

    @staticmethod
    def _resolve_base_url(provider: ProviderConfig, base_url: Optional[str]) -> str:
        resolved = (base_url or provider.base_url or "").strip().rstrip("/")
        if not resolved:
            raise ConfigError(f"No API endpoint URL configured for provider '{provider.id}'.")
        return resolved

    @staticmethod
    def _build_headers(
        provider: ProviderConfig,
        dialect: BaseProvider,
        auth: Optional[AuthMaterial],
        accept: str,
    ) -> Dict[str, str]:
        headers = dict(BASE_HEADERS)
        headers["Accept"] = accept

        token = auth.token if auth else None
        if provider.auth_style in (AuthStyle.API_KEY, AuthStyle.OAUTH) and token:
            headers["Authorization"] = f"Bearer {token}"

        headers.update(dialect.extra_headers())
        return headers

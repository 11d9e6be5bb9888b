"""Read-only settings consumed by the gateway

The gateway never writes settings back; callers build a ``GatewaySettings``
once (usually via ``load_gateway_settings``) and pass it into every call.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class OAuthSettings(BaseModel):
    """OAuth client configuration for the OAuth-capable provider"""

    model_config = ConfigDict(frozen=True)

    client_id: str = ""
    auth_url: str = ""
    token_url: str = ""
    scope: str = ""
    redirect_uri: str = "http://localhost:1455/auth/callback"


class GatewaySettings(BaseModel):
    """Settings snapshot used for a gateway call"""

    model_config = ConfigDict(frozen=True)

    provider_id: str = "ollama"
    base_url_by_provider: Dict[str, str] = Field(default_factory=dict)
    model_by_provider: Dict[str, str] = Field(default_factory=dict)
    api_key_by_provider: Dict[str, str] = Field(default_factory=dict)
    oauth_client_id: str = ""
    oauth_auth_url: str = ""
    oauth_token_url: str = ""
    oauth_scope: str = ""
    oauth_redirect_uri: str = "http://localhost:1455/auth/callback"
    system_prompt: str = ""
    use_internet: bool = False

    def base_url_for(self, provider_id: str) -> Optional[str]:
        return self.base_url_by_provider.get(provider_id)

    def model_for(self, provider_id: str) -> str:
        return self.model_by_provider.get(provider_id, "")

    def api_key_for(self, provider_id: str) -> Optional[str]:
        return self.api_key_by_provider.get(provider_id) or None

    def oauth(self) -> OAuthSettings:
        """Return the OAuth fields as a standalone settings object"""
        return OAuthSettings(
            client_id=self.oauth_client_id,
            auth_url=self.oauth_auth_url,
            token_url=self.oauth_token_url,
            scope=self.oauth_scope,
            redirect_uri=self.oauth_redirect_uri,
        )


def load_gateway_settings(provider_id: Optional[str] = None) -> GatewaySettings:
    """Build settings from the environment / .env file

    Per-provider values are read from ``<PROVIDER>_BASE_URL``,
    ``<PROVIDER>_MODEL`` and ``<PROVIDER>_API_KEY`` for every registered
    provider.

    Args:
        provider_id: Optional override for the active provider

    Returns:
        Immutable GatewaySettings instance
    """
    import settings
    from providers.registry import available_providers
    from .loader import get_config_loader

    loader = get_config_loader()
    provider_ids = available_providers()

    return GatewaySettings(
        provider_id=provider_id or settings.PROVIDER_ID,
        base_url_by_provider=loader.get_per_provider(provider_ids, "BASE_URL"),
        model_by_provider=loader.get_per_provider(provider_ids, "MODEL"),
        api_key_by_provider=loader.get_per_provider(provider_ids, "API_KEY"),
        oauth_client_id=settings.OAUTH_CLIENT_ID,
        oauth_auth_url=settings.OAUTH_AUTH_URL,
        oauth_token_url=settings.OAUTH_TOKEN_URL,
        oauth_scope=settings.OAUTH_SCOPE,
        oauth_redirect_uri=settings.OAUTH_REDIRECT_URI,
        system_prompt=settings.SYSTEM_PROMPT,
        use_internet=settings.USE_INTERNET,
    )

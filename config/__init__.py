"""Configuration management package for the LLM stream gateway"""

from .loader import ConfigLoader, get_config_loader
from .settings_store import GatewaySettings, OAuthSettings, load_gateway_settings

__all__ = [
    "ConfigLoader",
    "get_config_loader",
    "GatewaySettings",
    "OAuthSettings",
    "load_gateway_settings",
]

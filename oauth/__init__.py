"""OAuth (authorization code + PKCE) sign-in and token refresh"""

from .authorization import build_authorization_url, validate_oauth_settings
from .callback_server import InteractiveAuthLauncher, LoopbackAuthLauncher
from .models import OAuthTokenState, PendingAuthorization
from .pkce import PKCEPair, challenge_for, create_state, generate_pkce
from .token_manager import REFRESH_MARGIN_SECONDS, TokenManager, parse_callback_url

__all__ = [
    "build_authorization_url",
    "validate_oauth_settings",
    "InteractiveAuthLauncher",
    "LoopbackAuthLauncher",
    "OAuthTokenState",
    "PendingAuthorization",
    "PKCEPair",
    "challenge_for",
    "create_state",
    "generate_pkce",
    "REFRESH_MARGIN_SECONDS",
    "TokenManager",
    "parse_callback_url",
]

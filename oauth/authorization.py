"""OAuth authorization URL construction"""

from urllib.parse import urlencode

from config.settings_store import OAuthSettings
from core.errors import ConfigError
from .pkce import PKCEPair


def validate_oauth_settings(oauth_settings: OAuthSettings) -> None:
    """Raise ConfigError when a required OAuth setting is empty"""
    missing = [
        name
        for name, value in (
            ("client_id", oauth_settings.client_id),
            ("auth_url", oauth_settings.auth_url),
            ("token_url", oauth_settings.token_url),
        )
        if not (value or "").strip()
    ]
    if missing:
        raise ConfigError(f"OAuth is not configured: missing {', '.join(missing)}.")


def build_authorization_url(oauth_settings: OAuthSettings, pkce: PKCEPair, state: str) -> str:
    """Construct the authorize URL with PKCE

    Args:
        oauth_settings: Client id, endpoints, scope and redirect URI
        pkce: Verifier/challenge for this attempt
        state: Random state echoed back on the redirect

    Returns:
        Full authorization URL
    """
    params = {
        "response_type": "code",
        "client_id": oauth_settings.client_id,
        "redirect_uri": oauth_settings.redirect_uri,
    }
    if oauth_settings.scope:
        params["scope"] = oauth_settings.scope
    params.update({
        "state": state,
        "code_challenge": pkce.code_challenge,
        "code_challenge_method": "S256",
    })

    separator = "&" if "?" in oauth_settings.auth_url else "?"
    return f"{oauth_settings.auth_url}{separator}{urlencode(params)}"

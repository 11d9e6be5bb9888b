"""
OAuth token lifecycle management

States: signed out -> signed in (valid) -> signed in (expiring) -> refresh ->
signed in (valid) or signed out (refresh failed). Signing out is allowed from
any state.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import httpx

import settings
from config.settings_store import OAuthSettings
from core.errors import AuthError, ConfigError
from utils.storage import TokenStorage
from .authorization import build_authorization_url, validate_oauth_settings
from .callback_server import InteractiveAuthLauncher
from .models import OAuthTokenState, PendingAuthorization
from .pkce import create_state, generate_pkce
from .token_exchange import exchange_code, refresh_access_token

logger = logging.getLogger(__name__)

# Tokens this close to expiry are refreshed before use
REFRESH_MARGIN_SECONDS = 60


def parse_callback_url(callback_url: str) -> Dict[str, str]:
    """Extract the first value of each query parameter from a redirect URL"""
    parsed = urlparse(callback_url)
    query = parsed.query or parsed.fragment
    return {key: values[0] for key, values in parse_qs(query).items() if values}


class TokenManager:
    """Owns the OAuth token state: sign-in, refresh and sign-out"""

    def __init__(
        self,
        storage: Optional[TokenStorage] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        request_timeout: Optional[float] = None,
    ):
        """
        Args:
            storage: Token storage (defaults to the configured token file)
            http_client: Client for token endpoint calls
            clock: Source of "now" in epoch seconds
            request_timeout: Timeout for token endpoint calls
        """
        self.storage = storage or TokenStorage()
        self._http_client = http_client
        self._clock = clock
        self._timeout = request_timeout if request_timeout is not None else settings.TOKEN_REQUEST_TIMEOUT
        self._refresh_task: Optional[asyncio.Task] = None

    def begin_authorization(self, oauth_settings: OAuthSettings) -> Tuple[str, PendingAuthorization]:
        """Start a PKCE sign-in

        Returns:
            Tuple of (authorization_url, pending authorization)

        Raises:
            ConfigError: If client id, authorization URL or token URL is empty
        """
        validate_oauth_settings(oauth_settings)

        pkce = generate_pkce()
        state = create_state()
        pending = PendingAuthorization(
            state=state,
            code_verifier=pkce.code_verifier,
            redirect_uri=oauth_settings.redirect_uri,
            client_id=oauth_settings.client_id,
            token_url=oauth_settings.token_url,
            scope=oauth_settings.scope,
        )
        return build_authorization_url(oauth_settings, pkce, state), pending

    async def complete_authorization(self, callback_url: str, pending: PendingAuthorization) -> OAuthTokenState:
        """Finish sign-in from the redirect URL and persist the new tokens

        Raises:
            AuthError: If the redirect carries an error, the state does not
                match, the code is missing, or the code exchange fails
        """
        params = parse_callback_url(callback_url)

        error = params.get("error")
        if error:
            description = params.get("error_description")
            detail = f"{error} ({description})" if description else error
            raise AuthError(f"Authorization was denied: {detail}.")

        if params.get("state") != pending.state:
            logger.warning("OAuth state mismatch on callback, refusing code exchange")
            raise AuthError("Authorization state mismatch.")

        code = params.get("code")
        if not code:
            raise AuthError("Authorization callback did not include a code.")

        token_data = await exchange_code(
            pending.token_url,
            code=code,
            code_verifier=pending.code_verifier,
            client_id=pending.client_id,
            redirect_uri=pending.redirect_uri,
            client=self._http_client,
            timeout=self._timeout,
        )

        state = OAuthTokenState.from_token_response(token_data, now=self._clock())
        self.storage.save_tokens(state.to_dict())
        logger.info("Authentication complete with OAuth Bearer tokens")
        return state

    def load_state(self) -> Optional[OAuthTokenState]:
        """Return the stored token state, or None when signed out"""
        data = self.storage.load_tokens()
        if not data:
            return None
        return OAuthTokenState.from_dict(data)

    async def ensure_fresh_token(
        self,
        token_state: Optional[OAuthTokenState] = None,
        oauth_settings: Optional[OAuthSettings] = None,
    ) -> Optional[str]:
        """Return an access token valid for at least the refresh margin

        A token expiring more than 60 s from now is returned without network
        traffic. Otherwise the refresh grant runs once, shared by every
        concurrent caller.

        Args:
            token_state: State to check (defaults to the stored state)
            oauth_settings: Client id, token URL and scope for the refresh grant

        Returns:
            Access token, or None when signed out or the refresh failed (the
            stored session is cleared in that case)
        """
        state = token_state or self.load_state()
        if state is None:
            logger.debug("No OAuth session stored")
            return None

        if not state.expires_within(REFRESH_MARGIN_SECONDS, self._clock()):
            return state.access_token

        if not state.refresh_token:
            logger.error("Access token expired and no refresh token is available")
            self.clear_session()
            return None

        if oauth_settings is None or not oauth_settings.token_url or not oauth_settings.client_id:
            raise ConfigError("OAuth is not configured: cannot refresh the access token.")

        if self._refresh_task is None or self._refresh_task.done():
            logger.info("Token expiring, attempting automatic refresh...")
            self._refresh_task = asyncio.ensure_future(self._refresh(state, oauth_settings))
        else:
            logger.debug("Refresh already in progress, waiting for it")

        # Shielded so a cancelled caller does not cancel the refresh for the others
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self, state: OAuthTokenState, oauth_settings: OAuthSettings) -> Optional[str]:
        try:
            token_data = await refresh_access_token(
                oauth_settings.token_url,
                refresh_token=state.refresh_token,
                client_id=oauth_settings.client_id,
                scope=oauth_settings.scope or None,
                client=self._http_client,
                timeout=self._timeout,
            )
        except AuthError as e:
            logger.error(f"Failed to refresh token: {e}")
            self.clear_session()
            return None

        new_state = OAuthTokenState.from_token_response(
            token_data,
            now=self._clock(),
            previous_refresh_token=state.refresh_token,
        )
        self.storage.save_tokens(new_state.to_dict())
        logger.info("Successfully refreshed OAuth tokens")
        return new_state.access_token

    def clear_session(self) -> None:
        """Delete the stored session (safe to call when already signed out)"""
        self.storage.clear_tokens()
        logger.info("OAuth session cleared")

    async def sign_in(self, oauth_settings: OAuthSettings, launcher: InteractiveAuthLauncher) -> OAuthTokenState:
        """Run the whole interactive sign-in: authorize URL, redirect, code exchange"""
        authorization_url, pending = self.begin_authorization(oauth_settings)
        callback_url = await launcher.launch_interactive_auth(authorization_url)
        return await self.complete_authorization(callback_url, pending)

    def status(self) -> Dict[str, Any]:
        """Token status without secrets"""
        return self.storage.get_status(now=self._clock())

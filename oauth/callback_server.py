"""
Interactive redirect handling for OAuth sign-in

The launcher opens the authorization URL in the system browser and captures
the redirect on a local aiohttp server. State validation is left to the
TokenManager.
"""
import asyncio
import logging
import webbrowser
from typing import Callable, Optional, Protocol
from urllib.parse import urlparse

from aiohttp import web

import settings
from core.errors import AuthError, ConfigError

logger = logging.getLogger(__name__)

SUCCESS_PAGE = """
<html>
    <body>
        <h1>Authentication Complete</h1>
        <p>You can now close this window and return to the terminal.</p>
        <script>
            setTimeout(function() {
                window.close();
            }, 2000);
        </script>
    </body>
</html>
"""


class InteractiveAuthLauncher(Protocol):
    """Collaborator that sends the user to the authorization URL"""

    async def launch_interactive_auth(self, authorization_url: str) -> str:
        """Return the full redirect URL the browser landed on"""
        ...


class LoopbackAuthLauncher:
    """Opens the browser and waits for the redirect on a loopback server"""

    def __init__(
        self,
        redirect_uri: str,
        timeout: Optional[float] = None,
        open_browser: Callable[[str], bool] = webbrowser.open,
        announce: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            redirect_uri: Registered redirect URI; its host, port and path are served
            timeout: Seconds to wait for the redirect
            open_browser: Function that opens a URL in the browser
            announce: Called with the authorization URL before the browser opens
        """
        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or not parsed.hostname or not parsed.port:
            raise ConfigError(
                f"Redirect URI {redirect_uri!r} must be an http://host:port/path loopback address."
            )

        self.redirect_uri = redirect_uri
        self.host = parsed.hostname
        self.port = parsed.port
        self.path = parsed.path or "/"
        self.timeout = timeout if timeout is not None else settings.OAUTH_CALLBACK_TIMEOUT
        self._open_browser = open_browser
        self._announce = announce
        self._callback_url: Optional[str] = None
        self._event: Optional[asyncio.Event] = None

    async def _handle_callback(self, request: web.Request) -> web.Response:
        """Record the redirect URL and show a closing page"""
        self._callback_url = str(request.url)
        if self._event is not None:
            self._event.set()

        error = request.query.get("error")
        if error:
            return web.Response(
                text=f"<html><body><h1>Authentication Failed</h1><p>Error: {error}</p>"
                "<p>You can close this window.</p></body></html>",
                content_type="text/html",
                status=400,
            )
        return web.Response(text=SUCCESS_PAGE, content_type="text/html")

    async def launch_interactive_auth(self, authorization_url: str) -> str:
        """Open the browser and return the callback URL

        Raises:
            AuthError: If no redirect arrives before the timeout
        """
        self._event = asyncio.Event()
        self._callback_url = None

        app = web.Application()
        app.router.add_get(self.path, self._handle_callback)
        runner = web.AppRunner(app)
        await runner.setup()

        try:
            site = web.TCPSite(runner, host=self.host, port=self.port)
            await site.start()
            logger.info(f"OAuth callback server listening on {self.host}:{self.port}{self.path}")

            if self._announce:
                self._announce(authorization_url)
            if not self._open_browser(authorization_url):
                logger.warning("Could not open a browser; open the authorization URL manually")

            try:
                await asyncio.wait_for(self._event.wait(), timeout=self.timeout)
            except asyncio.TimeoutError:
                raise AuthError(f"No OAuth callback received within {self.timeout} seconds.")

            return self._callback_url
        finally:
            await runner.cleanup()

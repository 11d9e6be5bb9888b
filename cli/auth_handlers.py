"""Authentication handlers for CLI"""

import logging

from rich.prompt import Confirm

from config.settings_store import GatewaySettings
from core.errors import AuthError, ConfigError
from oauth import LoopbackAuthLauncher, TokenManager

logger = logging.getLogger(__name__)


async def login(token_manager: TokenManager, settings: GatewaySettings, console, debug: bool = False) -> int:
    """
    Handle the interactive OAuth login flow

    Args:
        token_manager: TokenManager instance
        settings: Current gateway settings (OAuth client configuration)
        console: Rich console for output
        debug: Whether debug mode is enabled

    Returns:
        Process exit code
    """
    console.print("\n[bold cyan]OAuth Sign-In[/bold cyan]\n")

    def announce(url: str):
        console.print("[bold]Opening browser to:[/bold]")
        console.print(f"[dim]{url}[/dim]\n", highlight=False)
        console.print("If the browser does not open, paste the URL above into it.")
        console.print("Waiting for authentication...")

    try:
        launcher = LoopbackAuthLauncher(settings.oauth_redirect_uri, announce=announce)
        state = await token_manager.sign_in(settings.oauth(), launcher)
    except (AuthError, ConfigError) as e:
        console.print(f"[red]✗ Authentication failed:[/red] {e}")
        logger.debug(f"Sign-in failed: {e!r}")
        return 1

    console.print("\n[bold green]✓ Authentication successful![/bold green]")
    if state.scope:
        console.print(f"[dim]Scope: {state.scope}[/dim]")
    console.print(f"[dim]Tokens saved to {token_manager.storage.token_file}[/dim]")
    return 0


def logout(token_manager: TokenManager, console, assume_yes: bool = False) -> int:
    """
    Clear stored tokens

    Args:
        token_manager: TokenManager instance
        console: Rich console for output
        assume_yes: Skip the confirmation prompt

    Returns:
        Process exit code
    """
    if not assume_yes and not Confirm.ask("Are you sure you want to clear all tokens?"):
        console.print("Logout cancelled")
        return 0

    token_manager.clear_session()
    console.print("[green]Tokens cleared successfully[/green]")
    return 0

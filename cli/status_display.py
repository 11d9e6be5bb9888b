"""Status display functionality for CLI"""

from typing import Any, Dict

from rich.table import Table

from config.settings_store import GatewaySettings
from oauth.token_manager import TokenManager
from providers.registry import PROVIDER_REGISTRY, AuthStyle, available_providers


def get_auth_status(status: Dict[str, Any]) -> tuple[str, str]:
    """
    Summarize a token status dict

    Args:
        status: Result of TokenManager.status()

    Returns:
        Tuple of (status, detail_message)
    """
    if not status["has_tokens"]:
        return "NO AUTH", "No tokens available"

    if status["is_expired"]:
        if status.get("has_refresh_token"):
            return "EXPIRED", f"Expired {status['time_until_expiry']} (will refresh on next call)"
        return "EXPIRED", f"Expired {status['time_until_expiry']}"

    return "VALID", f"Expires in {status['time_until_expiry']}"


def show_token_status(token_manager: TokenManager, console):
    """
    Display detailed token status

    Args:
        token_manager: TokenManager instance
        console: Rich console for output
    """
    status = token_manager.status()
    auth_status, auth_detail = get_auth_status(status)

    table = Table(title="Token Status Details")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    color = "green" if auth_status == "VALID" else "yellow"
    table.add_row("Status", f"[{color}]{auth_status}[/{color}] ({auth_detail})")
    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")
    table.add_row("Is Expired", "Yes" if status["is_expired"] else "No")
    table.add_row("Refresh Token", "Yes" if status.get("has_refresh_token") else "No")

    if status["expires_at"]:
        table.add_row("Expires At", status["expires_at"])
        table.add_row("Time Until Expiry", status["time_until_expiry"])
    if status.get("scope"):
        table.add_row("Scope", status["scope"])

    table.add_row("Token File", str(token_manager.storage.token_file))

    console.print(table)


def show_provider_table(settings: GatewaySettings, console):
    """
    Display registered providers and their effective configuration

    Args:
        settings: Current gateway settings
        console: Rich console for output
    """
    table = Table(title="Providers")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Auth")
    table.add_column("Base URL")
    table.add_column("Model")
    table.add_column("Web Search")

    for provider_id in available_providers():
        provider = PROVIDER_REGISTRY[provider_id]
        marker = " [green]*[/green]" if provider_id == settings.provider_id else ""

        auth = provider.auth_style.value
        if provider.auth_style == AuthStyle.API_KEY:
            auth += " (set)" if settings.api_key_for(provider_id) else " (missing)"

        table.add_row(
            f"{provider_id}{marker}",
            provider.display_name,
            auth,
            settings.base_url_for(provider_id) or provider.base_url or "[dim]not set[/dim]",
            settings.model_for(provider_id) or "[dim]not set[/dim]",
            "Yes" if provider.supports_web_search else "No",
        )

    console.print(table)

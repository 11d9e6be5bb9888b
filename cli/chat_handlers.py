"""Chat, model listing and connection check handlers for CLI"""

import logging
from pathlib import Path
from typing import AsyncIterator, Optional

from rich.prompt import Prompt
from rich.table import Table

from config.settings_store import GatewaySettings
from core.errors import ClassifiedError
from core.models import ChatRequest, EventKind, StreamEvent
from gateway import ConversationSession, Gateway

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit")
CLEAR_COMMAND = "/clear"


def print_error(error: ClassifiedError, console, debug: bool = False):
    """
    Print a classified error, with its debug record in debug mode

    Args:
        error: Classified error
        console: Rich console for output
        debug: Whether debug mode is enabled
    """
    console.print(f"[red]ERROR ({error.category.value}):[/red] {error.user_message}", highlight=False)
    if debug:
        console.print("[dim]Debug info:[/dim]")
        console.print(error.debug_detail.format(), markup=False, highlight=False)


async def render_stream(events: AsyncIterator[StreamEvent], console, debug: bool = False) -> bool:
    """
    Print deltas as they arrive

    Args:
        events: Event iterator from the gateway or a session
        console: Rich console for output
        debug: Whether debug mode is enabled

    Returns:
        True if the stream completed, False if it ended with an error
    """
    printed_any = False
    async for event in events:
        if event.kind == EventKind.DELTA:
            console.print(event.text, end="", markup=False, highlight=False)
            printed_any = True
        elif event.kind == EventKind.DONE:
            console.print()
            return True
        else:
            if printed_any:
                console.print()
            print_error(event.error, console, debug)
            return False
    return False


def read_image(image_path: Optional[str]) -> Optional[bytes]:
    if not image_path:
        return None
    return Path(image_path).expanduser().read_bytes()


async def ask(
    gateway: Gateway,
    settings: GatewaySettings,
    text: str,
    console,
    image_path: Optional[str] = None,
    debug: bool = False,
) -> int:
    """
    Send a single prompt and stream the answer

    Args:
        gateway: Gateway instance
        settings: Current gateway settings
        text: Prompt text
        console: Rich console for output
        image_path: Optional image to attach
        debug: Whether debug mode is enabled

    Returns:
        Process exit code
    """
    provider_id = settings.provider_id
    request = ChatRequest(
        model=settings.model_for(provider_id),
        trailing_user_text=text,
        system_prompt=settings.system_prompt or None,
        image=read_image(image_path),
        use_internet=settings.use_internet,
    )

    ok = await render_stream(gateway.send(request, provider_id, settings), console, debug)
    return 0 if ok else 1


async def chat(gateway: Gateway, settings: GatewaySettings, console, debug: bool = False) -> int:
    """
    Interactive conversation with follow-up questions

    Args:
        gateway: Gateway instance
        settings: Current gateway settings
        console: Rich console for output
        debug: Whether debug mode is enabled

    Returns:
        Process exit code
    """
    session = ConversationSession(settings.provider_id, settings)
    console.print(
        f"[bold cyan]Chatting with {settings.provider_id}[/bold cyan] "
        f"[dim](model: {settings.model_for(settings.provider_id) or 'not set'})[/dim]"
    )
    console.print(f"[dim]Type {CLEAR_COMMAND} to start over, {EXIT_COMMANDS[0]} to leave.[/dim]\n")

    while True:
        try:
            text = Prompt.ask("[bold]You[/bold]")
        except EOFError:
            break

        text = text.strip()
        if not text:
            continue
        if text in EXIT_COMMANDS:
            break
        if text == CLEAR_COMMAND:
            session.clear()
            console.print("[green]Conversation cleared[/green]")
            continue

        console.print("[bold]Assistant:[/bold] ", end="")
        await render_stream(session.ask(gateway, text), console, debug)
        logger.debug(f"Conversation now has {len(session.turns)} turn(s)")

    console.print("Goodbye!")
    return 0


async def list_models(gateway: Gateway, settings: GatewaySettings, console, debug: bool = False) -> int:
    """
    Print the models available on the active provider

    Returns:
        Process exit code
    """
    try:
        models = await gateway.list_models(settings.provider_id, settings)
    except ClassifiedError as e:
        print_error(e, console, debug)
        return 1

    if not models:
        console.print("[yellow]No models found[/yellow]")
        return 0

    current = settings.model_for(settings.provider_id)
    table = Table(title=f"Models on {settings.provider_id}")
    table.add_column("Model", style="cyan")
    for name in models:
        table.add_row(f"{name} [green]*[/green]" if name == current else name)
    console.print(table)
    return 0


async def check_connection(gateway: Gateway, settings: GatewaySettings, console, debug: bool = False) -> int:
    """
    Verify the provider is reachable, then run a short non-streaming test chat

    Returns:
        Process exit code
    """
    provider_id = settings.provider_id
    console.print(f"Checking connection to [cyan]{provider_id}[/cyan]...")

    try:
        models = await gateway.test_connection(provider_id, settings)
    except ClassifiedError as e:
        print_error(e, console, debug)
        return 1
    console.print(f"[green]✓ Connection successful! Found {len(models)} model(s).[/green]")

    model = settings.model_for(provider_id)
    if not model:
        console.print("[yellow]No model configured; skipping test chat[/yellow]")
        return 0

    request = ChatRequest(model=model, trailing_user_text="Hello! Please reply with a short greeting.")
    try:
        reply = await gateway.complete(request, provider_id, settings)
    except ClassifiedError as e:
        print_error(e, console, debug)
        return 1

    console.print(f"[green]✓ Test chat with {model} succeeded:[/green]")
    console.print(reply, markup=False, highlight=False)
    return 0

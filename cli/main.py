"""CLI entry point and argument parsing"""

import argparse
import asyncio
import sys
from typing import List, Optional

from rich.console import Console

import settings
from config.settings_store import GatewaySettings, load_gateway_settings
from gateway import Gateway
from providers.registry import available_providers
from cli import auth_handlers, chat_handlers
from cli.debug_setup import setup_debug_console
from cli.status_display import show_provider_table, show_token_status


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llm-gateway",
        description="Stream answers from Ollama, Open WebUI, OpenAI-compatible and OpenRouter backends",
    )
    parser.add_argument("--provider", "-p", choices=available_providers(), default=None,
                        help="Provider to use (default: PROVIDER_ID from config)")
    parser.add_argument("--model", "-m", default=None, help="Override the provider's configured model")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging and show debug records")
    parser.add_argument(
        "--stream-trace",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable raw stream tracing log capture (implied by --debug unless explicitly disabled)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ask_parser = subparsers.add_parser("ask", help="Send one prompt and stream the answer")
    ask_parser.add_argument("text", nargs="+", help="Prompt text")
    ask_parser.add_argument("--image", default=None, help="Attach an image file")

    subparsers.add_parser("chat", help="Interactive conversation with follow-up questions")
    subparsers.add_parser("models", help="List models available on the provider")
    subparsers.add_parser("check", help="Test the connection and run a short test chat")
    subparsers.add_parser("login", help="Sign in with OAuth (opens a browser)")

    logout_parser = subparsers.add_parser("logout", help="Clear stored OAuth tokens")
    logout_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("status", help="Show provider configuration and token status")
    return parser


def apply_model_override(gateway_settings: GatewaySettings, model: Optional[str]) -> GatewaySettings:
    """Return settings with the active provider's model replaced"""
    if not model:
        return gateway_settings
    models = dict(gateway_settings.model_by_provider)
    models[gateway_settings.provider_id] = model
    return gateway_settings.model_copy(update={"model_by_provider": models})


async def run_command(args: argparse.Namespace, gateway: Gateway, gateway_settings: GatewaySettings, out) -> int:
    """Dispatch a parsed command"""
    if args.command == "ask":
        return await chat_handlers.ask(
            gateway, gateway_settings, " ".join(args.text), out, image_path=args.image, debug=args.debug
        )
    if args.command == "chat":
        return await chat_handlers.chat(gateway, gateway_settings, out, debug=args.debug)
    if args.command == "models":
        return await chat_handlers.list_models(gateway, gateway_settings, out, debug=args.debug)
    if args.command == "check":
        return await chat_handlers.check_connection(gateway, gateway_settings, out, debug=args.debug)
    if args.command == "login":
        return await auth_handlers.login(gateway.token_manager, gateway_settings, out, debug=args.debug)
    if args.command == "logout":
        return auth_handlers.logout(gateway.token_manager, out, assume_yes=args.yes)
    if args.command == "status":
        show_provider_table(gateway_settings, out)
        show_token_status(gateway.token_manager, out)
        return 0
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None):
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)

    # Determine stream tracing preference (config default -> CLI overrides)
    stream_trace_setting = settings.STREAM_TRACE_ENABLED
    if args.stream_trace is None:
        if args.debug:
            stream_trace_setting = True
    else:
        stream_trace_setting = args.stream_trace

    out = setup_debug_console(args.debug, stream_trace_setting)

    try:
        gateway_settings = apply_model_override(load_gateway_settings(args.provider), args.model)
        gateway = Gateway(stream_trace_enabled=stream_trace_setting)
        exit_code = asyncio.run(run_command(args, gateway, gateway_settings, out))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        console.print("Goodbye!")
        exit_code = 130
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            console.print_exception()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()

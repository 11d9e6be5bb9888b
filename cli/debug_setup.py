"""Logging and console setup for the CLI"""

import logging
import os

from rich.console import Console

import settings

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(debug: bool, log_file: str = None) -> None:
    """Configure root logging

    Without debug only warnings and above reach the console (or ``LOG_LEVEL``
    when it is stricter). With debug everything is logged to the console and
    appended to the debug log file.

    Args:
        debug: Whether debug mode is enabled
        log_file: Debug log path (defaults to DEBUG_LOG_FILE)
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    if not debug:
        configured = logging.getLevelName(str(settings.LOG_LEVEL).upper())
        level = configured if isinstance(configured, int) else logging.INFO
        level = max(level, logging.WARNING)
        root_logger.setLevel(level)
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)
        return

    root_logger.setLevel(logging.DEBUG)
    console_handler.setLevel(logging.DEBUG)

    log_path = os.path.abspath(log_file or settings.DEBUG_LOG_FILE)
    file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')  # 'a' to append
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # httpx/httpcore debug output would include every header line
    logging.getLogger("httpcore").setLevel(logging.INFO)

    logger.info(f"Debug logging enabled - appending to {log_path}")


def setup_debug_console(debug: bool, stream_trace_enabled: bool) -> Console:
    """
    Configure logging and return the console used for output

    Args:
        debug: Whether debug mode is enabled
        stream_trace_enabled: Whether raw stream tracing is on

    Returns:
        Console instance
    """
    setup_logging(debug)
    console = Console()

    if debug:
        console.print(f"[yellow]Debug mode enabled - verbose logging will be written to {settings.DEBUG_LOG_FILE}[/yellow]")
    if stream_trace_enabled:
        console.print(f"[yellow]Stream tracing enabled - raw chunks will be logged inside '{settings.STREAM_TRACE_DIR}'[/yellow]")

    return console

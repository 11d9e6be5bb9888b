"""CLI package for the LLM stream gateway

Command-line stand-in for a UI: streams answers to the terminal, runs
interactive follow-up conversations and manages OAuth sign-in.
"""

from cli.main import main

__all__ = [
    "main",
]

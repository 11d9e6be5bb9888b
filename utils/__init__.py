"""Shared utilities package for the LLM stream gateway"""

from .storage import TokenStorage

__all__ = [
    "TokenStorage",
]

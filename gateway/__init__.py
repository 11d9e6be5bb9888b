"""Streaming gateway and conversation sessions"""

from .gateway import Gateway
from .session import ConversationSession

__all__ = [
    "Gateway",
    "ConversationSession",
]

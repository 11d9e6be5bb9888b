"""Data models shared by the request builder, stream decoder and gateway"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from .errors import ClassifiedError


class Role(str, Enum):
    """Role of a prior conversation turn"""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """One prior exchange entry in a conversation

    Attributes:
        role: Who produced the text
        text: The message text
    """
    role: Role
    text: str


@dataclass(frozen=True)
class ChatRequest:
    """Normalized chat request shared by all providers

    Built fresh per call and never mutated afterwards.

    Attributes:
        model: Model identifier on the backend
        trailing_user_text: The new user message, always sent last
        system_prompt: Optional system instructions
        turns: Prior turns in conversation order
        image: Optional raw image bytes attached to the trailing message
        use_internet: Ask for web-search augmentation where supported
    """
    model: str
    trailing_user_text: str
    system_prompt: Optional[str] = None
    turns: Tuple[Turn, ...] = ()
    image: Optional[bytes] = None
    use_internet: bool = False

    def __post_init__(self):
        # Accept any sequence of turns but store an immutable tuple
        if not isinstance(self.turns, tuple):
            object.__setattr__(self, "turns", tuple(self.turns))


class EventKind(str, Enum):
    DELTA = "delta"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    """Event produced while streaming a response

    ``delta`` carries ``text``, ``done`` carries ``full_text`` and ``error``
    carries ``error``. ``done`` is terminal and nothing follows ``error``.
    """
    kind: EventKind
    text: str = ""
    full_text: str = ""
    error: Optional["ClassifiedError"] = None

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(kind=EventKind.DELTA, text=text)

    @classmethod
    def done(cls, full_text: str) -> "StreamEvent":
        return cls(kind=EventKind.DONE, full_text=full_text)

    @classmethod
    def failed(cls, error: "ClassifiedError") -> "StreamEvent":
        return cls(kind=EventKind.ERROR, error=error)


@dataclass(frozen=True)
class AuthMaterial:
    """Credential resolved for a single call (None when unauthenticated)"""
    token: Optional[str] = None


@dataclass(frozen=True)
class HttpCall:
    """Concrete HTTP call produced by the request builder

    Attributes:
        url: Fully resolved endpoint URL
        headers: Outgoing headers (may contain credentials)
        body: JSON body, or None for GET calls
    """
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None

    @property
    def method(self) -> str:
        return "GET" if self.body is None else "POST"

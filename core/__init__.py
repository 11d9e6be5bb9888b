"""Core data types and error taxonomy"""

from .models import (
    AuthMaterial,
    ChatRequest,
    EventKind,
    HttpCall,
    Role,
    StreamEvent,
    Turn,
)
from .errors import (
    AuthError,
    ClassifiedError,
    ConfigError,
    ContentTypeError,
    DebugRecord,
    ErrorCategory,
    ErrorClassifier,
    ErrorContext,
    GatewayError,
    HttpStatusError,
    Stage,
)

__all__ = [
    "AuthMaterial",
    "ChatRequest",
    "EventKind",
    "HttpCall",
    "Role",
    "StreamEvent",
    "Turn",
    "AuthError",
    "ClassifiedError",
    "ConfigError",
    "ContentTypeError",
    "DebugRecord",
    "ErrorCategory",
    "ErrorClassifier",
    "ErrorContext",
    "GatewayError",
    "HttpStatusError",
    "Stage",
]

"""Error taxonomy and classification for gateway calls

Raw failures (configuration problems, missing credentials, transport errors,
rejected HTTP calls, undecodable bodies) are turned into a ``ClassifiedError``
by ``ErrorClassifier.classify``. Only classified errors cross the gateway
boundary.
"""

import datetime
import json
import logging
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

# Response body excerpts in user messages and debug records are capped
BODY_EXCERPT_LIMIT = 500

SENSITIVE_HEADERS = ("authorization", "x-api-key", "api-key", "cookie", "proxy-authorization")


class GatewayError(Exception):
    """Base exception for raw gateway failures (before classification)"""


class ConfigError(GatewayError):
    """Caller supplied invalid or missing configuration"""


class AuthError(GatewayError):
    """Credential missing, expired, rejected by the OAuth server or refresh failed"""


class HttpStatusError(GatewayError):
    """Backend answered with a non-2xx status"""

    def __init__(self, status_code: int, body: str = "", reason: str = ""):
        self.status_code = status_code
        self.body = body or ""
        self.reason = reason or ""
        suffix = f" - {self.body[:BODY_EXCERPT_LIMIT]}" if self.body else ""
        super().__init__(f"HTTP error! status: {status_code}{suffix}")


class ContentTypeError(GatewayError):
    """Non-streaming call returned something other than JSON"""

    def __init__(self, content_type: str, preview: str = ""):
        self.content_type = content_type
        self.preview = preview[:BODY_EXCERPT_LIMIT]
        super().__init__(
            f"Unexpected response type ({content_type or 'unknown'}). "
            f"Make sure the API endpoint is correct. Preview: {self.preview}"
        )


class ErrorCategory(str, Enum):
    NETWORK = "network"
    HTTP_STATUS = "httpStatus"
    PARSE = "parse"
    AUTH = "auth"
    CONFIG = "config"


class Stage(str, Enum):
    """Where in a gateway call the failure happened"""
    CONFIG = "config"
    AUTH = "auth"
    BUILD = "build"
    CONNECT = "connect"
    STATUS = "status"
    STREAM = "stream"
    PARSE = "parse"


# Fallback category when the raw error type does not decide it
_STAGE_CATEGORIES = {
    Stage.CONFIG: ErrorCategory.CONFIG,
    Stage.AUTH: ErrorCategory.AUTH,
    Stage.BUILD: ErrorCategory.CONFIG,
    Stage.CONNECT: ErrorCategory.NETWORK,
    Stage.STATUS: ErrorCategory.HTTP_STATUS,
    Stage.STREAM: ErrorCategory.PARSE,
    Stage.PARSE: ErrorCategory.PARSE,
}


@dataclass
class ErrorContext:
    """What was being sent when a failure happened"""
    url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None


@dataclass
class DebugRecord:
    """Structured details shown on demand next to a classified error"""
    timestamp: str
    stage: str
    url: Optional[str]
    headers: Dict[str, str]
    body: Any
    error: Dict[str, str]
    status_code: Optional[int] = None
    response_excerpt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "timestamp": self.timestamp,
            "stage": self.stage,
            "requestUrl": self.url,
            "requestHeaders": self.headers,
            "requestBody": self.body,
            "error": self.error,
        }
        if self.status_code is not None:
            data["statusCode"] = self.status_code
        if self.response_excerpt:
            data["responseExcerpt"] = self.response_excerpt
        return data

    def format(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)


class ClassifiedError(Exception):
    """A failure mapped onto the gateway's error taxonomy

    Instances come from ``ErrorClassifier.classify``.
    """

    def __init__(self, category: ErrorCategory, user_message: str, debug_detail: DebugRecord):
        super().__init__(user_message)
        self.category = category
        self.user_message = user_message
        self.debug_detail = debug_detail

    def __repr__(self) -> str:
        return f"ClassifiedError(category={self.category.value!r}, user_message={self.user_message!r})"


def redact_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Copy headers with credential values replaced"""
    redacted = {}
    for name, value in (headers or {}).items():
        if name.lower() in SENSITIVE_HEADERS:
            redacted[name] = "[REDACTED]"
        else:
            redacted[name] = value
    return redacted


def reduce_body(body: Any) -> Any:
    """Copy a request body without binary image payloads"""
    if isinstance(body, dict):
        reduced = {}
        for key, value in body.items():
            if key == "images" and isinstance(value, list):
                reduced[key] = [f"<image omitted: {len(item)} base64 chars>" for item in value]
            else:
                reduced[key] = reduce_body(value)
        return reduced
    if isinstance(body, list):
        return [reduce_body(item) for item in body]
    if isinstance(body, str) and body.startswith("data:") and ";base64," in body:
        return f"<image data URL omitted: {len(body)} chars>"
    return body


class ErrorClassifier:
    """Maps raw failures onto ``ErrorCategory`` with a user-facing message"""

    def classify(
        self,
        stage: Stage,
        raw_error: BaseException,
        context: Optional[ErrorContext] = None,
    ) -> ClassifiedError:
        """Classify a raw failure

        Args:
            stage: Stage of the call where the failure happened
            raw_error: The exception that was caught
            context: Outgoing request details for the debug record

        Returns:
            ClassifiedError with category, message and debug record
        """
        context = context or ErrorContext()
        if isinstance(raw_error, ClassifiedError):
            return raw_error

        category = self._category_for(stage, raw_error)
        message = self._message_for(category, raw_error, context)
        record = self._debug_record(stage, raw_error, context)

        prefix = f"[{context.request_id}] " if context.request_id else ""
        logger.error(f"{prefix}{category.value} error at stage={stage.value}: {raw_error}")
        return ClassifiedError(category, message, record)

    @staticmethod
    def _category_for(stage: Stage, raw_error: BaseException) -> ErrorCategory:
        if isinstance(raw_error, ConfigError):
            return ErrorCategory.CONFIG
        if isinstance(raw_error, AuthError):
            return ErrorCategory.AUTH
        if isinstance(raw_error, HttpStatusError):
            return ErrorCategory.HTTP_STATUS
        if isinstance(raw_error, (ContentTypeError, json.JSONDecodeError)):
            return ErrorCategory.PARSE
        if isinstance(raw_error, (httpx.TransportError, OSError)):
            return ErrorCategory.NETWORK
        if isinstance(raw_error, httpx.InvalidURL):
            return ErrorCategory.CONFIG
        return _STAGE_CATEGORIES.get(stage, ErrorCategory.NETWORK)

    @staticmethod
    def _message_for(category: ErrorCategory, raw_error: BaseException, context: ErrorContext) -> str:
        target = context.url or "the configured endpoint"

        if category == ErrorCategory.NETWORK:
            return (
                f"Could not connect to {target}. "
                "Make sure the server is running and the endpoint address is correct and reachable."
            )

        if category == ErrorCategory.HTTP_STATUS:
            if not isinstance(raw_error, HttpStatusError):
                return f"Request to {target} was rejected: {raw_error}"
            status = raw_error.status_code
            if status == 404:
                message = "API endpoint not found (HTTP 404). Make sure the API path and base URL are correct for this provider."
            elif status == 400:
                message = "Invalid request (HTTP 400). Check that the selected model is available on this provider."
            elif status in (401, 403):
                message = f"Credentials rejected (HTTP {status}). Check the API key or sign in again."
            else:
                message = f"Request failed (HTTP {status})."
            excerpt = raw_error.body.strip()[:BODY_EXCERPT_LIMIT]
            if excerpt:
                message = f"{message} Response: {excerpt}"
            return message

        if category == ErrorCategory.PARSE:
            return f"Unexpected response from {target}: {raw_error}"

        if category == ErrorCategory.AUTH:
            return f"Authentication required: {raw_error} Please sign in again."

        return f"Configuration error: {raw_error}"

    @staticmethod
    def _debug_record(stage: Stage, raw_error: BaseException, context: ErrorContext) -> DebugRecord:
        stack = "".join(traceback.format_exception(type(raw_error), raw_error, raw_error.__traceback__))
        status_code = None
        excerpt = None
        if isinstance(raw_error, HttpStatusError):
            status_code = raw_error.status_code
            excerpt = raw_error.body[:BODY_EXCERPT_LIMIT] or None
        elif isinstance(raw_error, ContentTypeError):
            excerpt = raw_error.preview or None

        return DebugRecord(
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            stage=stage.value,
            url=context.url,
            headers=redact_headers(context.headers),
            body=reduce_body(context.body),
            error={
                "name": type(raw_error).__name__,
                "message": str(raw_error),
                "stack": stack,
            },
            status_code=status_code,
            response_excerpt=excerpt,
        )

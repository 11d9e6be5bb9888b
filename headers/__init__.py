"""HTTP headers and constants package for the LLM stream gateway"""

from .constants import (
    ACCEPT_JSON,
    ACCEPT_STREAM,
    ATTRIBUTION_REFERER_HEADER,
    ATTRIBUTION_TITLE_HEADER,
    BASE_HEADERS,
    JSON_CONTENT_TYPE,
    USER_AGENT,
)

__all__ = [
    "ACCEPT_JSON",
    "ACCEPT_STREAM",
    "ATTRIBUTION_REFERER_HEADER",
    "ATTRIBUTION_TITLE_HEADER",
    "BASE_HEADERS",
    "JSON_CONTENT_TYPE",
    "USER_AGENT",
]

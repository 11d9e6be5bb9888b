"""HTTP request header names and values shared by all provider calls"""

from typing import Dict

# Every outbound body is JSON
JSON_CONTENT_TYPE = "application/json"

# Accept values for streaming and non-streaming calls
ACCEPT_STREAM = "application/x-ndjson, text/event-stream"
ACCEPT_JSON = "application/json"

# User-Agent string for API requests
USER_AGENT = "llm-stream-gateway/0.1.0"

# Attribution header pair required by OpenRouter
ATTRIBUTION_REFERER_HEADER = "HTTP-Referer"
ATTRIBUTION_TITLE_HEADER = "X-Title"

# Headers sent with every call, before provider-specific additions
BASE_HEADERS: Dict[str, str] = {
    "Content-Type": JSON_CONTENT_TYPE,
    "User-Agent": USER_AGENT,
}

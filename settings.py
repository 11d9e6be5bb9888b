from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get("LOG_LEVEL", "info")
DEBUG_LOG_FILE = config.get("DEBUG_LOG_FILE", "gateway_debug.log")

# Active provider (one of the ids in providers.registry)
PROVIDER_ID = config.get("PROVIDER_ID", "ollama")

# Prompt defaults applied to every request built from settings
SYSTEM_PROMPT = config.get("SYSTEM_PROMPT", "")
USE_INTERNET = config.get("USE_INTERNET", False)

# Attribution headers (sent only to providers that require them)
APP_REFERER = config.get("APP_REFERER", "http://localhost")
APP_TITLE = config.get("APP_TITLE", "LLM Stream Gateway")

# OAuth configuration for the OAuth-capable provider
# The redirect URI is owned by the host environment; the loopback launcher
# listens on its host/port.
OAUTH_CLIENT_ID = config.get("OAUTH_CLIENT_ID", "")
OAUTH_AUTH_URL = config.get("OAUTH_AUTH_URL", "")
OAUTH_TOKEN_URL = config.get("OAUTH_TOKEN_URL", "")
OAUTH_SCOPE = config.get("OAUTH_SCOPE", "")
OAUTH_REDIRECT_URI = config.get("OAUTH_REDIRECT_URI", "http://localhost:1455/auth/callback")

# Token endpoint calls (code exchange / refresh) only; chat streams carry no timeout
TOKEN_REQUEST_TIMEOUT = config.get("TOKEN_REQUEST_TIMEOUT", 30.0)

# Seconds to wait for the browser redirect during interactive sign-in
OAUTH_CALLBACK_TIMEOUT = config.get("OAUTH_CALLBACK_TIMEOUT", 300)

# Token storage
TOKEN_FILE = config.get("TOKEN_FILE", str(Path.home() / ".llm-stream-gateway" / "tokens.json"))

# Stream tracing / debugging
STREAM_TRACE_ENABLED = config.get("STREAM_TRACE_ENABLED", False)
STREAM_TRACE_DIR = config.get("STREAM_TRACE_DIR", "stream_traces")
STREAM_TRACE_MAX_BYTES = config.get("STREAM_TRACE_MAX_BYTES", 262144)

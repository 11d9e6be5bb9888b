import json
import logging
import os
import platform
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from settings import TOKEN_FILE

logger = logging.getLogger(__name__)


class TokenStorage:
    """Secure token storage with file permissions

    Stores the OAuth token state as JSON. A missing or unreadable file means
    signed out.
    """

    def __init__(self, token_file: Optional[str] = None):
        self.token_path = Path(token_file if token_file else TOKEN_FILE)
        self._ensure_secure_directory()

    def _ensure_secure_directory(self):
        """Create parent directory with secure permissions"""
        parent_dir = self.token_path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            # Directory permissions 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def save_tokens(self, data: Dict[str, Any]):
        """Persist token state, replacing whatever was stored"""
        self.token_path.write_text(json.dumps(data, indent=2))

        # File permissions 600 on Unix-like systems
        if platform.system() != "Windows":
            os.chmod(self.token_path, 0o600)

    def load_tokens(self) -> Optional[Dict[str, Any]]:
        """Load token state from storage"""
        if not self.token_path.exists():
            return None

        try:
            data = json.loads(self.token_path.read_text())
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
            return None

        if not isinstance(data, dict) or not data.get("access_token"):
            logger.warning(f"Ignoring token file without an access token: {self.token_path}")
            return None
        return data

    def clear_tokens(self):
        """Remove stored tokens"""
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            pass

    def get_status(self, now: Optional[float] = None) -> Dict[str, Any]:
        """Get token status without exposing secrets"""
        tokens = self.load_tokens()
        if not tokens:
            return {
                "has_tokens": False,
                "is_expired": True,
                "expires_at": None,
                "time_until_expiry": "No tokens",
                "has_refresh_token": False,
                "scope": None,
            }

        expires_at = int(tokens.get("expires_at", 0))
        current_time = int(now if now is not None else time.time())
        expires_str = datetime.fromtimestamp(expires_at).isoformat()
        status = {
            "has_tokens": True,
            "expires_at": expires_str,
            "has_refresh_token": bool(tokens.get("refresh_token")),
            "scope": tokens.get("scope"),
        }

        if current_time >= expires_at:
            time_since = current_time - expires_at
            hours_since = time_since // 3600
            mins_since = (time_since % 3600) // 60

            if hours_since > 0:
                time_str = f"{hours_since}h {mins_since}m ago"
            else:
                time_str = f"{mins_since}m ago"

            status.update(is_expired=True, time_until_expiry=time_str)
            return status

        time_remaining = expires_at - current_time
        hours = time_remaining // 3600
        minutes = (time_remaining % 3600) // 60

        if hours > 0:
            time_str = f"{hours}h {minutes}m"
        else:
            time_str = f"{minutes}m"

        status.update(is_expired=False, time_until_expiry=time_str, expires_in_seconds=time_remaining)
        return status

    @property
    def token_file(self) -> Path:
        """Get the token file path"""
        return self.token_path

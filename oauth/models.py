"""Data models for OAuth sign-in and token state"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

# Token responses without expires_in are assumed to last an hour
DEFAULT_EXPIRES_IN = 3600


@dataclass
class OAuthTokenState:
    """Persisted OAuth credential

    Attributes:
        access_token: Bearer token for API requests
        refresh_token: Token for the refresh grant (may be absent)
        token_type: Token type reported by the server
        scope: Granted scope, if reported
        expires_at: Expiry as epoch seconds
    """
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None
    expires_at: float = 0.0

    def expires_within(self, seconds: float, now: float) -> bool:
        """True when the token expires in ``seconds`` or less"""
        return self.expires_at - now <= seconds

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OAuthTokenState":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or None,
            token_type=data.get("token_type") or "Bearer",
            scope=data.get("scope") or None,
            expires_at=float(data.get("expires_at", 0)),
        )

    @classmethod
    def from_token_response(
        cls,
        data: Dict[str, Any],
        now: float,
        previous_refresh_token: Optional[str] = None,
    ) -> "OAuthTokenState":
        """Build state from a token endpoint response

        A response without a new refresh token keeps ``previous_refresh_token``.
        """
        expires_in = data.get("expires_in")
        try:
            expires_in = float(expires_in) if expires_in is not None else DEFAULT_EXPIRES_IN
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN

        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or previous_refresh_token,
            token_type=data.get("token_type") or "Bearer",
            scope=data.get("scope") or None,
            expires_at=now + expires_in,
        )


@dataclass(frozen=True)
class PendingAuthorization:
    """Everything needed to finish a sign-in started by begin_authorization"""
    state: str
    code_verifier: str
    redirect_uri: str
    client_id: str
    token_url: str
    scope: str

"""PKCE (Proof Key for Code Exchange) generation"""

import base64
import hashlib
import secrets
from dataclasses import dataclass


@dataclass(frozen=True)
class PKCEPair:
    """PKCE codes for one authorization attempt

    Attributes:
        code_verifier: Random string kept client-side until the code exchange
        code_challenge: base64url(SHA-256(code_verifier)), sent in the authorization URL
    """
    code_verifier: str
    code_challenge: str


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def challenge_for(code_verifier: str) -> str:
    """Compute the S256 code challenge for a verifier"""
    return _b64url(hashlib.sha256(code_verifier.encode("utf-8")).digest())


def generate_pkce() -> PKCEPair:
    """Generate PKCE code verifier and challenge

    Returns:
        PKCEPair with a 43-char verifier and its S256 challenge
    """
    # High-entropy code_verifier (43-128 chars)
    code_verifier = _b64url(secrets.token_bytes(32))
    return PKCEPair(code_verifier=code_verifier, code_challenge=challenge_for(code_verifier))


def create_state() -> str:
    """Random state value used to bind the redirect to this attempt"""
    return secrets.token_urlsafe(32)

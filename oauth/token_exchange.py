"""OAuth token endpoint calls (authorization code exchange and refresh)"""

import logging
from typing import Any, Dict, Optional

import httpx

from core.errors import AuthError

logger = logging.getLogger(__name__)


async def post_token_form(
    token_url: str,
    form: Dict[str, str],
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """POST a form-encoded grant to the token endpoint

    Args:
        token_url: Token endpoint URL
        form: Grant parameters
        client: Shared client; a short-lived one is created when omitted
        timeout: Request timeout in seconds

    Returns:
        Parsed JSON token response

    Raises:
        AuthError: On transport failure, non-200 status, non-JSON body or a
            response without ``access_token``
    """
    headers = {"Accept": "application/json"}
    try:
        if client is not None:
            response = await client.post(token_url, data=form, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.post(token_url, data=form, headers=headers)
    except httpx.HTTPError as e:
        raise AuthError(f"Token endpoint unreachable: {e}") from e

    if response.status_code != 200:
        error_detail = response.text[:500]
        raise AuthError(f"Token request failed: {response.status_code} - {error_detail}")

    try:
        token_data = response.json()
    except ValueError as e:
        raise AuthError("Token endpoint returned a non-JSON response") from e

    if not isinstance(token_data, dict) or not token_data.get("access_token"):
        raise AuthError("Token response did not include an access_token")

    return token_data


async def exchange_code(
    token_url: str,
    code: str,
    code_verifier: str,
    client_id: str,
    redirect_uri: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """Exchange an authorization code for tokens"""
    logger.info("Exchanging authorization code for tokens...")
    return await post_token_form(
        token_url,
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "code_verifier": code_verifier,
        },
        client=client,
        timeout=timeout,
    )


async def refresh_access_token(
    token_url: str,
    refresh_token: str,
    client_id: str,
    scope: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """Run the refresh grant"""
    form = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": client_id,
    }
    if scope:
        form["scope"] = scope

    logger.info("Attempting to refresh OAuth tokens...")
    return await post_token_form(token_url, form, client=client, timeout=timeout)

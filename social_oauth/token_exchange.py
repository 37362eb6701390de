"""
Authorization-code exchange against the social auth service
"""
import logging
from typing import Any, Dict, Optional

import httpx

from headers.constants import BROWSER_USER_AGENT
from utils.errors import ProtocolError
from utils.http import http_session
from .constants import REDIRECT_URI, TOKEN_URL

logger = logging.getLogger(__name__)


async def exchange_code(
    code: str,
    code_verifier: str,
    redirect_uri: str = REDIRECT_URI,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Exchange an authorization code for social-login tokens.

    Returns:
        Dict with accessToken, refreshToken, profileArn, expiresIn,
        csrfToken, idToken and tokenType

    Raises:
        ProtocolError: Non-2xx response or a response without accessToken
    """
    try:
        async with http_session(http_client) as client:
            response = await client.post(
                TOKEN_URL,
                json={
                    "code": code,
                    "code_verifier": code_verifier,
                    "redirect_uri": redirect_uri,
                },
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": BROWSER_USER_AGENT,
                },
            )
    except httpx.RequestError as e:
        raise ProtocolError(f"Token exchange request failed: {e}") from e

    if not response.is_success:
        logger.error(f"Token exchange failed with status {response.status_code}: {response.text[:500]}")
        raise ProtocolError(f"Token exchange failed: {response.text[:200]}", http_status=response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise ProtocolError(f"Token exchange returned invalid JSON: {e}", http_status=response.status_code) from e

    if not isinstance(data, dict) or not data.get("accessToken"):
        raise ProtocolError("Token exchange response is missing accessToken", http_status=response.status_code)

    if data.get("csrfToken"):
        logger.debug(f"CSRF token received: {data['csrfToken'][:20]}...")
    else:
        logger.warning("No CSRF token in token exchange response")

    return {
        "accessToken": data["accessToken"],
        "refreshToken": data.get("refreshToken"),
        "profileArn": data.get("profileArn"),
        "expiresIn": data.get("expiresIn"),
        "csrfToken": data.get("csrfToken"),
        "idToken": data.get("idToken"),
        "tokenType": data.get("tokenType"),
    }

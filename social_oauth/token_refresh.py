"""Session-token refresh for social (Google / GitHub) accounts"""

import logging
from typing import Any, Dict, Optional

import httpx

from headers.constants import SOCIAL_REFRESH_USER_AGENT
from utils.errors import ProtocolError
from utils.http import http_session
from .constants import REFRESH_URL

logger = logging.getLogger(__name__)


async def refresh_social_token(
    refresh_token: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """Refresh a social-login access token

    The endpoint only accepts the pinned ``KiroBatchLoginCLI`` user agent.

    Returns:
        Dict with accessToken, refreshToken (old one carried over when
        omitted), expiresIn, csrfToken and profileArn

    Raises:
        ProtocolError: Non-2xx response or a response without accessToken
    """
    logger.info("[Social] Refreshing token...")
    try:
        async with http_session(http_client) as client:
            response = await client.post(
                REFRESH_URL,
                json={"refreshToken": refresh_token},
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": SOCIAL_REFRESH_USER_AGENT,
                },
            )
    except httpx.RequestError as e:
        raise ProtocolError(f"Social refresh request failed: {e}") from e

    if not response.is_success:
        logger.error(f"[Social] Refresh failed: {response.status_code} - {response.text[:500]}")
        raise ProtocolError(
            f"HTTP {response.status_code}: {response.text[:200]}".strip(),
            http_status=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ProtocolError(f"Social refresh returned invalid JSON: {e}", http_status=response.status_code) from e

    if not isinstance(data, dict) or not data.get("accessToken"):
        raise ProtocolError("Social refresh response is missing accessToken", http_status=response.status_code)

    logger.info(f"[Social] Token refreshed successfully, expires in {data.get('expiresIn')}s")
    return {
        "accessToken": data["accessToken"],
        "refreshToken": data.get("refreshToken") or refresh_token,
        "expiresIn": data.get("expiresIn"),
        "csrfToken": data.get("csrfToken"),
        "profileArn": data.get("profileArn"),
    }

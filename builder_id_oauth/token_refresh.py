"""OIDC refresh-token grant for device-flow (Builder ID) accounts"""

import logging
from typing import Any, Dict, Optional

import httpx

from utils.errors import ProtocolError
from utils.http import http_session
from .constants import REFRESH_TOKEN_GRANT_TYPE, oidc_base_url

logger = logging.getLogger(__name__)


async def refresh_oidc_token(
    refresh_token: str,
    client_id: str,
    client_secret: str,
    region: str,
    user_agent: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """Exchange an OIDC refresh token for a new access token

    Args:
        refresh_token: Current refresh token
        client_id: Registered OIDC client id
        client_secret: Registered OIDC client secret
        region: OIDC region the client was registered in
        user_agent: Kiro IDE identification string
        http_client: Optional shared client

    Returns:
        Dict with accessToken, refreshToken (old one carried over when the
        response omits it) and expiresIn

    Raises:
        ProtocolError: Non-200 response or a response without accessToken
    """
    url = f"{oidc_base_url(region)}/token"
    logger.info(f"[OIDC] Refreshing token in region {region}...")

    try:
        async with http_session(http_client) as client:
            response = await client.post(
                url,
                json={
                    "clientId": client_id,
                    "clientSecret": client_secret,
                    "refreshToken": refresh_token,
                    "grantType": REFRESH_TOKEN_GRANT_TYPE,
                },
                headers={"Content-Type": "application/json", "User-Agent": user_agent},
            )
    except httpx.RequestError as e:
        raise ProtocolError(f"OIDC refresh request failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"[OIDC] Refresh failed: {response.status_code} - {response.text[:500]}")
        raise ProtocolError(
            f"OIDC refresh failed: HTTP {response.status_code} {response.text[:200]}".strip(),
            http_status=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ProtocolError(f"OIDC refresh returned invalid JSON: {e}", http_status=200) from e

    if not isinstance(data, dict) or not data.get("accessToken"):
        raise ProtocolError("OIDC refresh response is missing accessToken", http_status=200)

    logger.info("[OIDC] Token refreshed successfully")
    return {
        "accessToken": data["accessToken"],
        "refreshToken": data.get("refreshToken") or refresh_token,
        "expiresIn": data.get("expiresIn"),
    }

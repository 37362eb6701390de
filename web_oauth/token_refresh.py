"""Cookie-authenticated RefreshToken RPC for web-login accounts"""

import logging
from typing import Any, Dict

from portal import PortalClient
from utils.errors import ProtocolError
from .constants import REFRESH_TOKEN_OPERATION

logger = logging.getLogger(__name__)


def build_session_cookie(access_token: str, session_token: str, idp: str) -> str:
    return f"AccessToken={access_token}; RefreshToken={session_token}; Idp={idp}"


async def refresh_web_oauth_token(
    portal: PortalClient,
    access_token: str,
    csrf_token: str,
    session_token: str,
    idp: str,
) -> Dict[str, Any]:
    """Rotate the access and CSRF tokens of a web-login session

    The session token itself never changes and is returned as refreshToken.

    Raises:
        AccountBannedError: Account suspended
        ProtocolError: RPC failure or a response missing accessToken/csrfToken
    """
    logger.info(f"[WebOAuth] Refreshing token for {idp}...")
    payload = await portal.call(
        REFRESH_TOKEN_OPERATION,
        {"csrfToken": csrf_token},
        cookie=build_session_cookie(access_token, session_token, idp),
        extra_headers={"x-csrf-token": csrf_token},
    )

    if not payload.get("accessToken"):
        raise ProtocolError("No access_token in RefreshToken response")
    if not payload.get("csrfToken"):
        raise ProtocolError("No csrf_token in RefreshToken response")

    logger.info(f"[WebOAuth] Token refreshed successfully, expires in {payload.get('expiresIn')}s")
    return {
        "accessToken": payload["accessToken"],
        "refreshToken": session_token,
        "expiresIn": payload.get("expiresIn"),
        "csrfToken": payload["csrfToken"],
        "profileArn": payload.get("profileArn"),
    }

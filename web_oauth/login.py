"""InitiateLogin / ExchangeToken RPC calls for the embedded login window"""

import logging
from typing import Any, Dict

from portal import PortalClient, response_cookies
from utils.errors import VerificationError
from .constants import (
    ACCESS_TOKEN_COOKIE,
    EXCHANGE_TOKEN_OPERATION,
    IDP_COOKIE,
    INITIATE_LOGIN_OPERATION,
    REDIRECT_URI,
    SESSION_COOKIE,
)

logger = logging.getLogger(__name__)


async def initiate_login(
    portal: PortalClient,
    idp: str,
    code_challenge: str,
    state: str,
    redirect_uri: str = REDIRECT_URI,
) -> str:
    """Ask the backend for the provider login URL

    Returns:
        The redirectUrl to load in the login window
    """
    logger.info(f"[WebOAuth] Calling InitiateLogin for {idp}...")
    payload = await portal.call(
        INITIATE_LOGIN_OPERATION,
        {
            "idp": idp,
            "redirectUri": redirect_uri,
            "codeChallenge": code_challenge,
            "codeChallengeMethod": "S256",
            "state": state,
        },
    )
    redirect_url = payload.get("redirectUrl")
    if not redirect_url:
        raise VerificationError("InitiateLogin response is missing redirectUrl")
    logger.debug(f"[WebOAuth] Got redirect URL: {redirect_url[:100]}...")
    return redirect_url


async def exchange_token(
    portal: PortalClient,
    idp: str,
    code: str,
    code_verifier: str,
    state: str,
    redirect_uri: str = REDIRECT_URI,
) -> Dict[str, Any]:
    """Exchange the authorization code through the ExchangeToken operation

    The session token only exists in the ``RefreshToken`` Set-Cookie header.
    Body fields win over cookie fields when both are present.

    Returns:
        Dict with accessToken, csrfToken, expiresIn, profileArn,
        sessionToken and idp

    Raises:
        VerificationError: accessToken, csrfToken or the session cookie is missing
    """
    logger.info(f"[WebOAuth] Calling ExchangeToken for {idp}...")
    payload, response = await portal.call_with_response(
        EXCHANGE_TOKEN_OPERATION,
        {
            "idp": idp,
            "code": code,
            "codeVerifier": code_verifier,
            "redirectUri": redirect_uri,
            "state": state,
        },
    )

    cookies = response_cookies(response)
    logger.debug(f"[WebOAuth] ExchangeToken set cookies: {sorted(cookies)}")

    access_token = payload.get("accessToken") or cookies.get(ACCESS_TOKEN_COOKIE)
    csrf_token = payload.get("csrfToken")
    session_token = cookies.get(SESSION_COOKIE)

    if not access_token:
        raise VerificationError("No access_token in ExchangeToken response")
    if not csrf_token:
        raise VerificationError("No csrf_token in ExchangeToken response")
    if not session_token:
        raise VerificationError("No RefreshToken cookie from ExchangeToken")

    logger.info(f"[WebOAuth] Token exchange successful, expires in {payload.get('expiresIn')}s")
    return {
        "accessToken": access_token,
        "csrfToken": csrf_token,
        "expiresIn": payload.get("expiresIn"),
        "profileArn": payload.get("profileArn"),
        "sessionToken": session_token,
        "idp": cookies.get(IDP_COOKIE) or idp,
    }

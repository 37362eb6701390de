"""Unattended device grant driven by an existing SSO portal bearer token

Given the ``x-amz-sso_authn`` token of a signed-in AWS access portal
session, the user-code approval that normally happens in a browser is
performed directly against the portal and OIDC endpoints.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

import settings
from headers.constants import SSO_REFERER
from utils.errors import AuthorizationDeniedError, FlowExpiredError, ProtocolError
from utils.http import http_session
from .constants import AUTHORIZATION_PENDING, CLIENT_TYPE, SLOW_DOWN, SLOW_DOWN_INCREMENT, oidc_base_url
from .oidc import (
    json_or_error,
    device_token_error,
    device_token_payload,
    json_headers,
    register_client,
    request_device_code,
    request_device_token,
)

logger = logging.getLogger(__name__)


def _sso_headers() -> Dict[str, str]:
    headers = json_headers()
    headers["Referer"] = SSO_REFERER
    return headers


async def _portal_device_session(client: httpx.AsyncClient, bearer_token: str, user_agent: str) -> str:
    portal = settings.SSO_PORTAL_BASE

    who = await client.get(
        f"{portal}/token/whoAmI",
        headers={
            "Authorization": f"Bearer {bearer_token}",
            "Accept": "application/json",
            "User-Agent": user_agent,
        },
    )
    if who.status_code != 200:
        raise ProtocolError(f"Bearer token verification failed: HTTP {who.status_code}", http_status=who.status_code)
    logger.info("[SSO] Bearer token verified")

    session = await client.post(
        f"{portal}/session/device",
        json={},
        headers={
            "Authorization": f"Bearer {bearer_token}",
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        },
    )
    token = json_or_error(session, "Device session").get("token")
    if not token:
        raise ProtocolError("Device session response is missing token")
    return token


async def import_from_sso_token(
    bearer_token: str,
    user_agent: str,
    region: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """Run the whole device grant using a portal bearer token

    Args:
        bearer_token: Value of the portal's x-amz-sso_authn cookie
        user_agent: Kiro IDE identification string for the portal calls
        region: OIDC region (defaults to DEFAULT_REGION)
        http_client: Optional shared client
        timeout: Overall polling timeout in seconds (defaults to SSO_IMPORT_TIMEOUT)

    Returns:
        Dict with accessToken, refreshToken, clientId, clientSecret, region, expiresIn

    Raises:
        ProtocolError: Any step of the exchange failed
        AuthorizationDeniedError: Token endpoint returned a terminal error
        FlowExpiredError: No token before the timeout
    """
    region = region or settings.DEFAULT_REGION
    timeout = timeout if timeout is not None else settings.SSO_IMPORT_TIMEOUT
    oidc = oidc_base_url(region)

    try:
        async with http_session(http_client) as client:
            logger.info("[SSO] Step 1: Registering OIDC client...")
            registration = await register_client(client, region)
            client_id = registration["clientId"]
            client_secret = registration["clientSecret"]

            logger.info("[SSO] Step 2: Starting device authorization...")
            device = await request_device_code(client, region, client_id, client_secret)
            interval = int(device.get("interval") or 1)

            logger.info("[SSO] Step 3: Opening portal device session...")
            user_session_id = await _portal_device_session(client, bearer_token, user_agent)

            logger.info("[SSO] Step 4: Accepting user code...")
            accepted = await client.post(
                f"{oidc}/device_authorization/accept_user_code",
                json={"userCode": device["userCode"], "userSessionId": user_session_id},
                headers=_sso_headers(),
            )
            device_context = json_or_error(accepted, "Accept user code").get("deviceContext") or {}

            if device_context.get("deviceContextId"):
                logger.info("[SSO] Step 5: Approving authorization...")
                approved = await client.post(
                    f"{oidc}/device_authorization/associate_token",
                    json={
                        "deviceContext": {
                            "deviceContextId": device_context["deviceContextId"],
                            "clientId": device_context.get("clientId") or client_id,
                            "clientType": device_context.get("clientType") or CLIENT_TYPE,
                        },
                        "userSessionId": user_session_id,
                    },
                    headers=_sso_headers(),
                )
                json_or_error(approved, "Associate token")

            logger.info("[SSO] Step 6: Polling for token...")
            started = clock()
            while clock() - started < timeout:
                await sleep(interval)
                try:
                    response = await request_device_token(
                        client, region, client_id, client_secret, device["deviceCode"]
                    )
                except httpx.RequestError as e:
                    logger.warning(f"[SSO] Token poll error: {e}")
                    continue

                if response.status_code == 200:
                    data = device_token_payload(response)
                    logger.info("[SSO] Token obtained successfully")
                    return {
                        "accessToken": data.get("accessToken"),
                        "refreshToken": data.get("refreshToken"),
                        "clientId": client_id,
                        "clientSecret": client_secret,
                        "region": region,
                        "expiresIn": data.get("expiresIn"),
                    }

                if response.status_code == 400:
                    error = device_token_error(response)
                    if error == AUTHORIZATION_PENDING:
                        continue
                    if error == SLOW_DOWN:
                        interval += SLOW_DOWN_INCREMENT
                        continue
                    raise AuthorizationDeniedError(f"Token request failed: {error}")
    except httpx.RequestError as e:
        raise ProtocolError(f"SSO import request failed: {e}") from e

    raise FlowExpiredError("Authorization timed out, please try again")

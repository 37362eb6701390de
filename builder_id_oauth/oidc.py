"""
Plain-JSON calls against the region-scoped AWS SSO OIDC endpoints
"""
import logging
from typing import Any, Dict, Optional

import httpx

from headers.constants import BROWSER_HEADERS
from utils.errors import ProtocolError
from .constants import (
    CLIENT_NAME,
    CLIENT_TYPE,
    DEVICE_CODE_GRANT_TYPE,
    GRANT_TYPES,
    SCOPES,
    oidc_base_url,
)
import settings

logger = logging.getLogger(__name__)


def json_headers() -> Dict[str, str]:
    """Browser-mimicking headers for the SSO-fronted endpoints"""
    headers = dict(BROWSER_HEADERS)
    headers["Content-Type"] = "application/json"
    return headers


def json_or_error(response: httpx.Response, what: str) -> Dict[str, Any]:
    if response.status_code != 200:
        logger.error(f"{what} failed with status {response.status_code}: {response.text[:500]}")
        raise ProtocolError(f"{what} failed: HTTP {response.status_code}", http_status=response.status_code)
    try:
        data = response.json()
    except ValueError as e:
        raise ProtocolError(f"{what} returned invalid JSON: {e}", http_status=response.status_code) from e
    if not isinstance(data, dict):
        raise ProtocolError(f"{what} returned an unexpected payload", http_status=response.status_code)
    return data


async def register_client(client: httpx.AsyncClient, region: str) -> Dict[str, Any]:
    """Register a public OIDC client for the device-code grant

    Returns:
        Dict with clientId and clientSecret
    """
    response = await client.post(
        f"{oidc_base_url(region)}/client/register",
        json={
            "clientName": CLIENT_NAME,
            "clientType": CLIENT_TYPE,
            "scopes": SCOPES,
            "grantTypes": GRANT_TYPES,
            "issuerUrl": settings.SSO_START_URL,
        },
        headers=json_headers(),
    )
    data = json_or_error(response, "Client registration")
    if not data.get("clientId") or not data.get("clientSecret"):
        raise ProtocolError("Client registration response is missing clientId/clientSecret")
    logger.info(f"Registered OIDC client: {data['clientId'][:20]}...")
    return data


async def request_device_code(
    client: httpx.AsyncClient,
    region: str,
    client_id: str,
    client_secret: str,
) -> Dict[str, Any]:
    """Request a device code and user code

    Returns:
        Dict with deviceCode, userCode, verificationUri,
        verificationUriComplete, interval and expiresIn
    """
    response = await client.post(
        f"{oidc_base_url(region)}/device_authorization",
        json={
            "clientId": client_id,
            "clientSecret": client_secret,
            "startUrl": settings.SSO_START_URL,
        },
        headers=json_headers(),
    )
    data = json_or_error(response, "Device authorization")
    if not data.get("deviceCode") or not data.get("userCode"):
        raise ProtocolError("Device authorization response is missing deviceCode/userCode")
    return data


async def request_device_token(
    client: httpx.AsyncClient,
    region: str,
    client_id: str,
    client_secret: str,
    device_code: str,
) -> httpx.Response:
    """Query the token endpoint for a device code

    The raw response is returned; the caller interprets 200 / 400 error codes.
    """
    return await client.post(
        f"{oidc_base_url(region)}/token",
        json={
            "clientId": client_id,
            "clientSecret": client_secret,
            "grantType": DEVICE_CODE_GRANT_TYPE,
            "deviceCode": device_code,
        },
        headers=json_headers(),
    )


def device_token_error(response: httpx.Response) -> Optional[str]:
    """Extract the OAuth ``error`` code from a 400 token response"""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("error")
    return None


def device_token_payload(response: httpx.Response) -> Dict[str, Any]:
    """Parse a 200 token response; it must carry an accessToken"""
    data = json_or_error(response, "Device token")
    if not data.get("accessToken"):
        raise ProtocolError("Device token response is missing accessToken", http_status=response.status_code)
    return data

"""CBOR RPC client for the KiroWebPortalService backend

Every operation is ``POST {base}/{Operation}`` with a CBOR body and the
smithy rpc-v2-cbor framing headers. Errors are classified into the
exceptions of :mod:`utils.errors`.
"""

import logging
import uuid
from typing import Any, Dict, Optional, Tuple

import cbor2
import httpx

import settings
from headers.constants import CBOR_CONTENT_TYPE, SDK_REQUEST_ATTEMPT, SMITHY_PROTOCOL
from headers.user_agent import UserAgentProvider
from utils.errors import AccountBannedError, AuthorizationExpiredError, ProtocolError
from utils.http import http_session

logger = logging.getLogger(__name__)

SUSPENDED_ERROR_TYPE = "AccountSuspendedException"


def generate_invocation_id() -> str:
    """UUID v4 for the amz-sdk-invocation-id header"""
    return str(uuid.uuid4())


def build_identity_cookie(access_token: str, idp: str) -> str:
    return f"Idp={idp}; AccessToken={access_token}"


def classify_error(status_code: int, body: bytes) -> ProtocolError:
    """Turn a non-2xx RPC response into the matching ProtocolError subclass

    The CBOR error body carries a namespaced ``__type`` (``ns#Name``) and a
    ``message``. When it cannot be decoded the message is ``HTTP <status>``.
    """
    error_type: Optional[str] = None
    message = f"HTTP {status_code}"

    try:
        payload = cbor2.loads(body) if body else None
    except (cbor2.CBORDecodeError, ValueError):
        payload = None
        logger.debug(f"Error body is not CBOR (HTTP {status_code}): {body[:200]!r}")

    if isinstance(payload, dict):
        raw_type = payload.get("__type")
        raw_message = payload.get("message") or payload.get("Message")
        if isinstance(raw_type, str) and raw_type:
            error_type = raw_type.split("#")[-1]
        if error_type and raw_message:
            message = f"{error_type}: {raw_message}"
        elif raw_message:
            message = str(raw_message)
        elif error_type:
            message = f"{error_type} (HTTP {status_code})"

    suspended = status_code == 423 or SUSPENDED_ERROR_TYPE in (error_type or "") or SUSPENDED_ERROR_TYPE in message
    if suspended:
        return AccountBannedError(f"BANNED: {message}", http_status=status_code, error_type=error_type)
    if status_code == 401:
        return AuthorizationExpiredError(f"HTTP 401: {message}", http_status=status_code, error_type=error_type)
    return ProtocolError(message, http_status=status_code, error_type=error_type)


def decode_body(status_code: int, body: bytes) -> Dict[str, Any]:
    """Decode a 2xx CBOR body; anything but a CBOR map is a protocol error"""
    try:
        payload = cbor2.loads(body)
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise ProtocolError(f"Malformed CBOR response: {e}", http_status=status_code) from e
    if not isinstance(payload, dict):
        raise ProtocolError(
            f"Unexpected CBOR response type: {type(payload).__name__}",
            http_status=status_code,
        )
    return payload


class PortalClient:
    """Low-level transport for backend RPC operations"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[UserAgentProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Operation base URL (defaults to the production portal)
            user_agent: Source of the x-amz-user-agent header
            http_client: Shared client; a short-lived one is used per call if None
        """
        self.base_url = (base_url or settings.KIRO_API_BASE).rstrip("/")
        self.user_agent = user_agent or UserAgentProvider()
        self.http_client = http_client

    def build_headers(
        self,
        access_token: Optional[str] = None,
        idp: Optional[str] = None,
        cookie: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        """Protocol headers, plus Bearer + identity cookie when a token is given

        An explicit ``cookie`` replaces the identity cookie and suppresses
        the Bearer header (cookie-authenticated operations).
        """
        headers = {
            "accept": CBOR_CONTENT_TYPE,
            "content-type": CBOR_CONTENT_TYPE,
            "smithy-protocol": SMITHY_PROTOCOL,
            "amz-sdk-invocation-id": generate_invocation_id(),
            "amz-sdk-request": SDK_REQUEST_ATTEMPT,
            "x-amz-user-agent": self.user_agent.get_user_agent(),
        }
        if cookie is not None:
            headers["cookie"] = cookie
        elif access_token:
            headers["authorization"] = f"Bearer {access_token}"
            headers["cookie"] = build_identity_cookie(access_token, idp or "BuilderId")
        if extra_headers:
            headers.update(extra_headers)
        return headers

    async def call_with_response(
        self,
        operation: str,
        body: Dict[str, Any],
        access_token: Optional[str] = None,
        idp: Optional[str] = None,
        cookie: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[Dict[str, Any], httpx.Response]:
        """Invoke an operation and return the decoded map with the raw response

        Raises:
            AccountBannedError: HTTP 423 or AccountSuspendedException
            AuthorizationExpiredError: HTTP 401
            ProtocolError: any other failure, including malformed CBOR
        """
        url = f"{self.base_url}/{operation}"
        headers = self.build_headers(access_token, idp, cookie, extra_headers)
        logger.debug(f"[Portal] Calling {operation} (idp={idp})")

        try:
            async with http_session(self.http_client) as client:
                response = await client.post(url, content=cbor2.dumps(body), headers=headers)
        except httpx.RequestError as e:
            logger.error(f"[Portal] {operation} request failed: {e}")
            raise ProtocolError(f"{operation} request failed: {e}") from e

        logger.debug(f"[Portal] {operation} responded with HTTP {response.status_code}")

        if not response.is_success:
            error = classify_error(response.status_code, response.content)
            logger.error(f"[Portal] {operation} failed: {error.message}")
            raise error

        return decode_body(response.status_code, response.content), response

    async def call(
        self,
        operation: str,
        body: Dict[str, Any],
        access_token: Optional[str] = None,
        idp: Optional[str] = None,
        cookie: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Invoke an operation and return the decoded response map"""
        payload, _ = await self.call_with_response(
            operation, body, access_token, idp, cookie, extra_headers
        )
        return payload

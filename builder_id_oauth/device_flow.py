"""Device-code authorization flow for Builder ID accounts

Lifecycle of one login:

    Idle -> ClientRegistered -> DeviceCodeIssued -> Polling
         -> Completed | Denied | Expired | Cancelled

Only one device session exists per process (see ``utils.sessions``);
starting a new flow supersedes and tears down the previous one.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

import settings
from utils.errors import (
    AuthorizationDeniedError,
    FlowExpiredError,
    LoginCancelledError,
    NoActiveLoginError,
    ProtocolError,
)
from utils.http import http_session
from utils.sessions import SessionSlot, login_sessions
from .constants import (
    ACCESS_DENIED,
    AUTHORIZATION_PENDING,
    EXPIRED_TOKEN,
    SLOW_DOWN,
    SLOW_DOWN_INCREMENT,
)
from .oidc import (
    device_token_error,
    device_token_payload,
    register_client,
    request_device_code,
    request_device_token,
)

logger = logging.getLogger(__name__)


class DeviceFlowState(str, Enum):
    IDLE = "idle"
    CLIENT_REGISTERED = "client_registered"
    DEVICE_CODE_ISSUED = "device_code_issued"
    POLLING = "polling"
    COMPLETED = "completed"
    DENIED = "denied"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


TERMINAL_STATES = {
    DeviceFlowState.COMPLETED,
    DeviceFlowState.DENIED,
    DeviceFlowState.EXPIRED,
    DeviceFlowState.CANCELLED,
}


@dataclass
class DeviceSession:
    """Transient state of one in-flight device login"""

    client_id: str
    client_secret: str
    device_code: str
    user_code: str
    verification_uri: str
    interval: int
    expires_at: int  # epoch millis
    region: str
    state: DeviceFlowState = DeviceFlowState.DEVICE_CODE_ISSUED
    waiter: Optional[asyncio.Task] = field(default=None, repr=False)

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at


@dataclass
class DeviceCodeInfo:
    """What the user needs to authorize on the second device"""

    user_code: str
    verification_uri: str
    expires_in: int
    interval: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userCode": self.user_code,
            "verificationUri": self.verification_uri,
            "expiresIn": self.expires_in,
            "interval": self.interval,
        }


@dataclass
class DevicePollResult:
    """Outcome of one non-terminal or successful poll"""

    status: str
    interval: int
    tokens: Optional[Dict[str, Any]] = None

    @property
    def completed(self) -> bool:
        return self.tokens is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"completed": self.completed, "status": self.status, "interval": self.interval}
        if self.tokens:
            data.update(self.tokens)
        return data


def _now_ms() -> int:
    return int(time.time() * 1000)


def current_task_or_none() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class DeviceAuthorizationFlow:
    """Device-code grant against the region-scoped OIDC endpoints"""

    def __init__(
        self,
        slot: Optional[SessionSlot] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.slot = slot if slot is not None else login_sessions.device
        self.http_client = http_client
        self.clock = clock

    @property
    def session(self) -> Optional[DeviceSession]:
        return self.slot.current

    async def start(self, region: Optional[str] = None) -> DeviceCodeInfo:
        """Register a client, request a device code and install the session

        Raises:
            ProtocolError: Registration or device authorization failed
        """
        region = region or settings.DEFAULT_REGION
        logger.info(f"[DeviceFlow] Starting Builder ID login in {region}")

        try:
            async with http_session(self.http_client) as client:
                registration = await register_client(client, region)
                logger.debug(f"[DeviceFlow] State: {DeviceFlowState.CLIENT_REGISTERED.value}")
                device = await request_device_code(
                    client, region, registration["clientId"], registration["clientSecret"]
                )
        except httpx.RequestError as e:
            raise ProtocolError(f"Device login request failed: {e}") from e

        expires_in = int(device.get("expiresIn") or settings.DEVICE_SESSION_TTL)
        interval = int(device.get("interval") or settings.DEVICE_POLL_INTERVAL)
        session = DeviceSession(
            client_id=registration["clientId"],
            client_secret=registration["clientSecret"],
            device_code=device["deviceCode"],
            user_code=device["userCode"],
            verification_uri=device.get("verificationUriComplete") or device.get("verificationUri", ""),
            interval=interval,
            expires_at=self.clock() + expires_in * 1000,
            region=region,
        )

        previous = self.slot.replace(session)
        if previous is not None:
            logger.info("[DeviceFlow] Superseding previous device login")
            self._teardown(previous, DeviceFlowState.CANCELLED)

        logger.info(f"[DeviceFlow] User code: {session.user_code}")
        return DeviceCodeInfo(
            user_code=session.user_code,
            verification_uri=session.verification_uri,
            expires_in=expires_in,
            interval=interval,
        )

    async def poll(self) -> DevicePollResult:
        """Query the token endpoint once

        Returns:
            A pending/slow_down result, or a completed one carrying accessToken,
            refreshToken, clientId, clientSecret, region and expiresIn

        Raises:
            NoActiveLoginError: No device login in flight
            FlowExpiredError: Session TTL passed (no network call) or expired_token
            AuthorizationDeniedError: The user denied the request
            LoginCancelledError: The session was cancelled while the request was in flight
            ProtocolError: Transport failure or unexpected response
        """
        session = self.slot.current
        if session is None:
            raise NoActiveLoginError("No device login in progress")

        if session.is_expired(self.clock()):
            self._finish(session, DeviceFlowState.EXPIRED)
            raise FlowExpiredError("Device authorization expired, please start again")

        session.state = DeviceFlowState.POLLING
        try:
            async with http_session(self.http_client) as client:
                response = await request_device_token(
                    client, session.region, session.client_id, session.client_secret, session.device_code
                )
        except httpx.RequestError as e:
            logger.error(f"[DeviceFlow] Poll error: {e}")
            raise ProtocolError(f"Device token poll failed: {e}") from e

        if not self.slot.is_current(session):
            raise LoginCancelledError("Device login was cancelled")

        if response.status_code == 200:
            try:
                data = device_token_payload(response)
            except ProtocolError:
                self._finish(session, DeviceFlowState.DENIED)
                raise
            self._finish(session, DeviceFlowState.COMPLETED)
            logger.info("[DeviceFlow] Authorization successful")
            return DevicePollResult(
                status=DeviceFlowState.COMPLETED.value,
                interval=session.interval,
                tokens={
                    "accessToken": data.get("accessToken"),
                    "refreshToken": data.get("refreshToken"),
                    "clientId": session.client_id,
                    "clientSecret": session.client_secret,
                    "region": session.region,
                    "expiresIn": data.get("expiresIn"),
                },
            )

        if response.status_code == 400:
            error = device_token_error(response)
            if error == AUTHORIZATION_PENDING:
                return DevicePollResult(status="pending", interval=session.interval)
            if error == SLOW_DOWN:
                session.interval += SLOW_DOWN_INCREMENT
                logger.debug(f"[DeviceFlow] slow_down, interval is now {session.interval}s")
                return DevicePollResult(status="slow_down", interval=session.interval)
            if error == EXPIRED_TOKEN:
                self._finish(session, DeviceFlowState.EXPIRED)
                raise FlowExpiredError("Device code expired")
            if error == ACCESS_DENIED:
                self._finish(session, DeviceFlowState.DENIED)
                raise AuthorizationDeniedError("User denied the authorization request")
            self._finish(session, DeviceFlowState.DENIED)
            raise ProtocolError(f"Authorization error: {error}", http_status=400, error_type=error)

        raise ProtocolError(f"Unexpected response: HTTP {response.status_code}", http_status=response.status_code)

    async def wait_for_tokens(
        self,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> Dict[str, Any]:
        """Poll at the session's (possibly growing) interval until a terminal outcome"""
        session = self.slot.current
        if session is None:
            raise NoActiveLoginError("No device login in progress")
        session.waiter = asyncio.current_task()

        try:
            while True:
                await sleep(session.interval)
                if not self.slot.is_current(session):
                    raise LoginCancelledError("Device login was cancelled")
                result = await self.poll()
                if result.completed:
                    return result.tokens
        except asyncio.CancelledError:
            if session.state == DeviceFlowState.CANCELLED:
                raise LoginCancelledError("Device login was cancelled") from None
            raise
        finally:
            session.waiter = None

    def cancel(self) -> bool:
        """Destroy the current session, if any; safe to call repeatedly

        Returns:
            True if a session was cancelled
        """
        session = self.slot.take()
        if session is None:
            return False
        logger.info("[DeviceFlow] Login cancelled")
        self._teardown(session, DeviceFlowState.CANCELLED)
        return True

    def _finish(self, session: DeviceSession, state: DeviceFlowState):
        self.slot.release(session)
        session.state = state

    @staticmethod
    def _teardown(session: DeviceSession, state: DeviceFlowState):
        if session.state not in TERMINAL_STATES:
            session.state = state
        waiter = session.waiter
        if waiter is not None and not waiter.done() and waiter is not current_task_or_none():
            waiter.cancel()

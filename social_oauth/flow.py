"""Authorization-code + PKCE login for Google / GitHub accounts

Two transport variants share one state machine:

    Idle -> Initiated -> AwaitingCallback
         -> Exchanged | Denied | StateMismatch | Cancelled

* deep link: the login URL is opened in an external browser and the
  ``kiro://`` callback is fed back through :meth:`handle_callback_url`
  or :meth:`complete_callback`.
* embedded: the backend issues the login URL (InitiateLogin), an owned
  isolated window is opened and its redirect is intercepted; tokens come
  from the ExchangeToken operation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

import httpx

from portal import PortalClient
from utils.errors import (
    AuthorizationDeniedError,
    ConfigurationError,
    LoginCancelledError,
    NoActiveLoginError,
    ProtocolError,
    StateMismatchError,
)
from utils.sessions import SessionSlot, login_sessions
from web_oauth import AuthWindow, PlaywrightAuthWindow, exchange_token, initiate_login
from web_oauth.constants import REDIRECT_URI as EMBEDDED_REDIRECT_URI
from .authorization import build_login_url, parse_callback_url
from .browser_handoff import BrowserLauncher
from .constants import (
    DEEP_LINK_VERIFIER_BYTES,
    EMBEDDED_VERIFIER_BYTES,
    REDIRECT_URI as DEEP_LINK_REDIRECT_URI,
    SOCIAL_PROVIDERS,
)
from .pkce import create_state, generate_pkce
from .token_exchange import exchange_code

logger = logging.getLogger(__name__)


class PkceVariant(str, Enum):
    DEEP_LINK = "deep_link"
    EMBEDDED = "embedded"


class PkceFlowState(str, Enum):
    IDLE = "idle"
    INITIATED = "initiated"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGED = "exchanged"
    DENIED = "denied"
    STATE_MISMATCH = "state_mismatch"
    CANCELLED = "cancelled"


TERMINAL_STATES = {
    PkceFlowState.EXCHANGED,
    PkceFlowState.DENIED,
    PkceFlowState.STATE_MISMATCH,
    PkceFlowState.CANCELLED,
}


@dataclass
class PkceSession:
    """Transient state of one in-flight PKCE login"""

    code_verifier: str
    code_challenge: str
    state: str
    provider: str
    variant: PkceVariant
    login_url: str = ""
    opened_with: Optional[str] = None  # "bitbrowser" or "system"
    flow_state: PkceFlowState = PkceFlowState.INITIATED
    window: Optional[AuthWindow] = field(default=None, repr=False)
    outcome: Optional[asyncio.Future] = field(default=None, repr=False)

    def settle(self, tokens: Optional[Dict[str, Any]] = None, error: Optional[BaseException] = None):
        """Resolve the outcome future once; later calls are ignored"""
        if self.outcome is None or self.outcome.done():
            return
        if error is not None:
            self.outcome.set_exception(error)
        else:
            self.outcome.set_result(tokens)


def _consume_outcome(future: asyncio.Future):
    # Nobody may be awaiting the outcome; mark exceptions as retrieved
    if not future.cancelled():
        future.exception()


class PkceAuthorizationFlow:
    """Single-slot PKCE login orchestrator"""

    def __init__(
        self,
        portal: Optional[PortalClient] = None,
        slot: Optional[SessionSlot] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        launcher: Optional[BrowserLauncher] = None,
        window_factory: Optional[Callable[[str], AuthWindow]] = None,
    ):
        """
        Args:
            portal: RPC client for the embedded variant
            slot: Session slot (defaults to the process-wide PKCE slot)
            http_client: Shared client for the deep-link token exchange
            launcher: Opens deep-link login URLs
            window_factory: Builds the embedded login window for a provider
        """
        self.portal = portal or PortalClient(http_client=http_client)
        self.slot = slot if slot is not None else login_sessions.pkce
        self.http_client = http_client
        self.launcher = launcher or BrowserLauncher(http_client=http_client)
        self.window_factory = window_factory or (lambda provider: PlaywrightAuthWindow(title=f"{provider} login"))
        self._pending: Set[asyncio.Future] = set()
        self._latest: Optional[PkceSession] = None

    @property
    def session(self) -> Optional[PkceSession]:
        return self.slot.current

    async def start(
        self,
        provider: str,
        variant: PkceVariant = PkceVariant.DEEP_LINK,
        open_browser: bool = True,
    ) -> Dict[str, Any]:
        """Begin a login, superseding any unfinished one

        Args:
            provider: "Google" or "Github"
            variant: deep link (external browser) or embedded window
            open_browser: Deep link only; False leaves opening the URL to the caller

        Returns:
            Dict with loginUrl and state
        """
        if provider not in SOCIAL_PROVIDERS:
            raise ConfigurationError(f"Unsupported login provider: {provider}")
        variant = PkceVariant(variant)

        num_bytes = EMBEDDED_VERIFIER_BYTES if variant == PkceVariant.EMBEDDED else DEEP_LINK_VERIFIER_BYTES
        pkce = generate_pkce(num_bytes)
        state = create_state()
        logger.info(f"[PKCE] Starting {provider} login ({variant.value})")

        if variant == PkceVariant.EMBEDDED:
            login_url = await initiate_login(self.portal, provider, pkce.challenge, state)
        else:
            login_url = build_login_url(provider, pkce.challenge, state)

        session = PkceSession(
            code_verifier=pkce.verifier,
            code_challenge=pkce.challenge,
            state=state,
            provider=provider,
            variant=variant,
            login_url=login_url,
            outcome=asyncio.get_running_loop().create_future(),
        )
        session.outcome.add_done_callback(_consume_outcome)

        previous = self.slot.replace(session)
        if previous is not None:
            logger.info("[PKCE] Superseding previous unfinished login")
            await self._teardown(previous, PkceFlowState.CANCELLED, LoginCancelledError("Superseded by a new login"))

        self._latest = session

        if variant == PkceVariant.EMBEDDED:
            session.window = self.window_factory(provider)
            try:
                await session.window.open(
                    login_url,
                    EMBEDDED_REDIRECT_URI,
                    on_redirect=lambda url: self._on_window_redirect(session, url),
                    on_closed=lambda: self._on_window_closed(session),
                )
            except Exception as e:
                logger.error(f"[PKCE] Failed to open login window: {e}")
                self.slot.release(session)
                await self._teardown(session, PkceFlowState.CANCELLED, LoginCancelledError(f"Login window failed: {e}"))
                raise
        elif open_browser:
            session.opened_with = await self.launcher.open(login_url)

        if session.flow_state == PkceFlowState.INITIATED:
            session.flow_state = PkceFlowState.AWAITING_CALLBACK
        return {"loginUrl": login_url, "state": state}

    async def complete_callback(self, code: str, state: str) -> Dict[str, Any]:
        """Validate ``state`` and exchange ``code`` for tokens

        Raises:
            NoActiveLoginError: No login in flight
            StateMismatchError: ``state`` differs from the session's; no exchange is attempted
            ProtocolError / VerificationError: The exchange itself failed
        """
        session = self.slot.current
        if session is None:
            raise NoActiveLoginError("No social login in progress")

        if state != session.state:
            logger.error("[PKCE] State mismatch in callback")
            error = StateMismatchError("State parameter mismatch, possible CSRF attempt")
            self.slot.release(session)
            await self._teardown(session, PkceFlowState.STATE_MISMATCH, error)
            raise error

        # The session is consumed by this attempt whatever its outcome
        self.slot.release(session)
        try:
            if session.variant == PkceVariant.EMBEDDED:
                tokens = await self._exchange_embedded(session, code)
            else:
                tokens = await self._exchange_deep_link(session, code)
        except Exception as e:
            logger.error(f"[PKCE] Token exchange failed: {e}")
            await self._teardown(session, PkceFlowState.DENIED, e)
            raise

        await self._close_window(session)
        session.flow_state = PkceFlowState.EXCHANGED
        session.settle(tokens)
        logger.info(f"[PKCE] {session.provider} login completed")
        if session.opened_with == "bitbrowser":
            await self._close_bitbrowser()
        return tokens

    async def handle_callback_url(self, url: str) -> Dict[str, Any]:
        """Complete the login from a raw redirect URL (deep link or embedded)

        Raises:
            AuthorizationDeniedError: The URL carries ``error`` or lacks code/state
        """
        params = parse_callback_url(url)
        if params.error or not params.code or not params.state:
            session = self.slot.take()
            reason = params.error or "Missing code or state"
            error = AuthorizationDeniedError(f"Authorization failed: {reason}")
            if session is not None:
                await self._teardown(session, PkceFlowState.DENIED, error)
            raise error
        return await self.complete_callback(params.code, params.state)

    async def wait_for_callback(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Wait for the current login to finish; raises its terminal error"""
        session = self.slot.current or self._latest
        if session is None or session.outcome is None:
            raise NoActiveLoginError("No social login in progress")
        return await asyncio.wait_for(asyncio.shield(session.outcome), timeout)

    async def cancel(self) -> bool:
        """Abandon the current login and close its window; idempotent"""
        session = self.slot.take()
        if session is None:
            return False
        logger.info("[PKCE] Login cancelled")
        await self._teardown(session, PkceFlowState.CANCELLED, LoginCancelledError("cancelled"))
        return True

    async def _exchange_deep_link(self, session: PkceSession, code: str) -> Dict[str, Any]:
        tokens = await exchange_code(code, session.code_verifier, DEEP_LINK_REDIRECT_URI, self.http_client)
        tokens.update({"authMethod": "Social", "provider": session.provider})
        return tokens

    async def _exchange_embedded(self, session: PkceSession, code: str) -> Dict[str, Any]:
        result = await exchange_token(self.portal, session.provider, code, session.code_verifier, session.state)
        return {
            "accessToken": result["accessToken"],
            "refreshToken": result["sessionToken"],
            "csrfToken": result["csrfToken"],
            "expiresIn": result["expiresIn"],
            "profileArn": result["profileArn"],
            "idp": result["idp"],
            "authMethod": "WebOAuth",
            "provider": session.provider,
        }

    def _on_window_redirect(self, session: PkceSession, url: str):
        if not self.slot.is_current(session):
            return
        task = asyncio.ensure_future(self._complete_from_window(session, url))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _complete_from_window(self, session: PkceSession, url: str):
        await self._close_window(session)
        try:
            await self.handle_callback_url(url)
        except Exception as e:
            # Delivered to waiters through the session outcome
            logger.debug(f"[PKCE] Embedded login ended with {type(e).__name__}: {e}")

    def _on_window_closed(self, session: PkceSession):
        if not self.slot.release(session):
            return
        session.flow_state = PkceFlowState.CANCELLED
        session.window = None
        session.settle(error=LoginCancelledError("cancelled"))

    async def _close_window(self, session: PkceSession):
        window, session.window = session.window, None
        if window is not None:
            await window.close()

    async def _close_bitbrowser(self):
        try:
            await self.launcher.close_bitbrowser()
        except ProtocolError as e:
            logger.warning(f"[PKCE] Failed to close BitBrowser profile: {e.message}")

    async def _teardown(self, session: PkceSession, state: PkceFlowState, error: BaseException):
        if session.flow_state not in TERMINAL_STATES:
            session.flow_state = state
        await self._close_window(session)
        session.settle(error=error)

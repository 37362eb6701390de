"""Result-returning facade over the credential lifecycle engine

Every public coroutine returns ``{"success": True, "data": ...}`` or
``{"success": False, "error": {"kind": ..., "message": ...}}``; exceptions
never cross this boundary.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

import httpx

from builder_id_oauth import DeviceAuthorizationFlow, import_from_sso_token
from headers.user_agent import UserAgentProvider
from portal import PortalClient
from social_oauth import BrowserLauncher, PkceAuthorizationFlow, PkceVariant
from utils.errors import AuthFlowError, ConfigurationError, FlowExpiredError
from utils.sessions import LoginSessionRegistry, login_sessions
from web_oauth import AuthWindow
from .batch import BatchVerifier, VerifiedAccount
from .models import CredentialBundle, now_ms
from .refresher import TokenRefresher
from .status import StatusChecker
from .verifier import CredentialVerifier

logger = logging.getLogger(__name__)

Result = Dict[str, Any]


def ok(data: Any = None) -> Result:
    return {"success": True, "data": data}


def fail(error: AuthFlowError) -> Result:
    return {"success": False, "error": error.to_dict()}


class AccountAuthService:
    """Login flows, refresh, status and import behind one result-dict API"""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        portal: Optional[PortalClient] = None,
        user_agent: Optional[UserAgentProvider] = None,
        sessions: Optional[LoginSessionRegistry] = None,
        launcher: Optional[BrowserLauncher] = None,
        window_factory: Optional[Callable[[str], AuthWindow]] = None,
    ):
        sessions = sessions or login_sessions
        self.http_client = http_client
        self.user_agent = user_agent or (portal.user_agent if portal else UserAgentProvider())
        self.portal = portal or PortalClient(user_agent=self.user_agent, http_client=http_client)

        self.refresher = TokenRefresher(portal=self.portal, user_agent=self.user_agent, http_client=http_client)
        self.verifier = CredentialVerifier(self.portal)
        self.status_checker = StatusChecker(self.verifier, self.refresher)
        self.batch = BatchVerifier(self.refresher, self.verifier)

        self.device_flow = DeviceAuthorizationFlow(sessions.device, http_client)
        self.pkce_flow = PkceAuthorizationFlow(
            portal=self.portal,
            slot=sessions.pkce,
            http_client=http_client,
            launcher=launcher,
            window_factory=window_factory,
        )

    async def _run(self, operation: str, call: Callable[[], Awaitable[Any]]) -> Result:
        try:
            return ok(await call())
        except AuthFlowError as e:
            logger.warning(f"{operation} failed ({e.kind}): {e.message}")
            return fail(e)
        except Exception as e:
            logger.exception(f"{operation} failed unexpectedly")
            return {"success": False, "error": {"kind": "error", "message": str(e) or type(e).__name__}}

    @staticmethod
    def _bundle(credentials: Dict[str, Any]) -> CredentialBundle:
        if not isinstance(credentials, dict):
            raise ConfigurationError("credentials must be an object")
        return CredentialBundle.from_dict(credentials)

    async def _verify_issued(self, tokens: Dict[str, Any]) -> VerifiedAccount:
        # Tokens straight from a login flow: stamp the expiry, then verify
        bundle = self._bundle(tokens)
        bundle.expires_at = now_ms() + int(tokens.get("expiresIn") or 3600) * 1000
        snapshot = await self.verifier.verify(bundle.access_token, bundle.idp)
        if snapshot.email and not bundle.email:
            bundle.email = snapshot.email
        return VerifiedAccount(bundle=bundle, snapshot=snapshot)

    async def verify_login_tokens(self, tokens: Dict[str, Any]) -> Result:
        """Verify the token set a finished login returned, without refreshing it"""
        async def call():
            return (await self._verify_issued(tokens)).to_dict()
        return await self._run("verify_login_tokens", call)

    # Builder ID device flow

    async def start_builder_id_login(self, region: Optional[str] = None) -> Result:
        async def call():
            return (await self.device_flow.start(region)).to_dict()
        return await self._run("start_builder_id_login", call)

    async def poll_builder_id_login(self) -> Result:
        async def call():
            return (await self.device_flow.poll()).to_dict()
        return await self._run("poll_builder_id_login", call)

    async def wait_builder_id_login(self) -> Result:
        return await self._run("wait_builder_id_login", self.device_flow.wait_for_tokens)

    async def cancel_builder_id_login(self) -> Result:
        async def call():
            return {"cancelled": self.device_flow.cancel()}
        return await self._run("cancel_builder_id_login", call)

    # Social deep-link login

    async def start_social_login(self, provider: str, open_browser: bool = True) -> Result:
        async def call():
            return await self.pkce_flow.start(provider, PkceVariant.DEEP_LINK, open_browser=open_browser)
        return await self._run("start_social_login", call)

    async def complete_social_login(self, code: str, state: str) -> Result:
        async def call():
            return await self.pkce_flow.complete_callback(code, state)
        return await self._run("complete_social_login", call)

    async def handle_social_callback_url(self, url: str) -> Result:
        async def call():
            return await self.pkce_flow.handle_callback_url(url)
        return await self._run("handle_social_callback_url", call)

    async def cancel_social_login(self) -> Result:
        async def call():
            return {"cancelled": await self.pkce_flow.cancel()}
        return await self._run("cancel_social_login", call)

    # Embedded web login

    async def start_web_oauth_login(self, provider: str) -> Result:
        async def call():
            started = await self.pkce_flow.start(provider, PkceVariant.EMBEDDED)
            return {"state": started["state"]}
        return await self._run("start_web_oauth_login", call)

    async def wait_web_oauth_login(self, timeout: Optional[float] = None) -> Result:
        """Wait for the window's callback, then verify the new account"""
        async def call():
            try:
                tokens = await self.pkce_flow.wait_for_callback(timeout)
            except asyncio.TimeoutError:
                raise FlowExpiredError("Timed out waiting for the login window") from None
            return (await self._verify_issued(tokens)).to_dict()
        return await self._run("wait_web_oauth_login", call)

    async def cancel_web_oauth_login(self) -> Result:
        async def call():
            return {"cancelled": await self.pkce_flow.cancel()}
        return await self._run("cancel_web_oauth_login", call)

    # SSO bearer-token import

    async def import_from_sso_token(self, bearer_token: str, region: Optional[str] = None) -> Result:
        async def call():
            if not bearer_token:
                raise ConfigurationError("Missing SSO bearer token")
            tokens = await import_from_sso_token(
                bearer_token,
                self.user_agent.get_user_agent(),
                region=region,
                http_client=self.http_client,
            )
            return (await self._verify_issued(tokens)).to_dict()
        return await self._run("import_from_sso_token", call)

    # Existing accounts

    async def refresh_account_token(self, credentials: Dict[str, Any]) -> Result:
        async def call():
            return (await self.refresher.refresh(self._bundle(credentials))).to_dict()
        return await self._run("refresh_account_token", call)

    async def check_account_status(self, credentials: Dict[str, Any]) -> Result:
        async def call():
            return (await self.status_checker.check_status(self._bundle(credentials))).to_dict()
        return await self._run("check_account_status", call)

    async def verify_account_credentials(self, credentials: Dict[str, Any]) -> Result:
        async def call():
            return (await self.batch.verify_credentials(self._bundle(credentials))).to_dict()
        return await self._run("verify_account_credentials", call)

    async def import_accounts(self, items: Iterable[Dict[str, Any]]) -> Result:
        async def call():
            return (await self.batch.verify_many(items)).to_dict()
        return await self._run("import_accounts", call)

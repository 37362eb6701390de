"""Account status check with one refresh-and-retry on an expired token"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from utils.errors import (
    AuthorizationExpiredError,
    ConfigurationError,
    ReauthenticationRequiredError,
    RefreshError,
)
from .models import AccountSnapshot, CredentialBundle, RefreshedTokens, now_ms
from .refresher import TokenRefresher
from .verifier import CredentialVerifier

logger = logging.getLogger(__name__)


@dataclass
class StatusResult:
    snapshot: AccountSnapshot
    bundle: CredentialBundle
    refreshed: bool = False
    tokens: Optional[RefreshedTokens] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.snapshot.to_dict()
        data["newCredentials"] = None
        if self.refreshed:
            data["newCredentials"] = {
                "accessToken": self.bundle.access_token,
                "refreshToken": self.bundle.refresh_token,
                "csrfToken": self.bundle.csrf_token,
                "expiresAt": self.bundle.expires_at,
            }
        return data


class StatusChecker:
    """Verify an account, refreshing its token at most once per check

    Checks of the same account are serialised so two concurrent checks
    cannot both refresh. The key is the account id, else the refresh
    token, else the access token.
    """

    def __init__(
        self,
        verifier: Optional[CredentialVerifier] = None,
        refresher: Optional[TokenRefresher] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.verifier = verifier or CredentialVerifier()
        self.refresher = refresher or TokenRefresher(portal=self.verifier.portal)
        self.clock = clock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, bundle: CredentialBundle) -> asyncio.Lock:
        key = bundle.account_id or bundle.refresh_token or bundle.access_token or ""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def check_status(self, bundle: CredentialBundle) -> StatusResult:
        """Verify ``bundle``, refreshing and retrying once on HTTP 401

        Raises:
            ConfigurationError: No access token
            ReauthenticationRequiredError: Token expired and could not be refreshed
            AccountBannedError: Account suspended (never triggers a refresh)
            AuthorizationExpiredError: Still 401 after one successful refresh
            VerificationError: Any other verification failure
        """
        lock = self._lock_for(bundle)
        async with lock:
            return await self._check(bundle)

    async def _check(self, bundle: CredentialBundle) -> StatusResult:
        if not bundle.access_token:
            raise ConfigurationError("Missing accessToken")

        try:
            snapshot = await self.verifier.verify(bundle.access_token, bundle.idp)
            return StatusResult(snapshot=snapshot, bundle=bundle)
        except AuthorizationExpiredError as expired:
            if not bundle.can_refresh():
                logger.warning(f"Token expired and {bundle.auth_method.value} credentials cannot refresh")
                raise ReauthenticationRequiredError(
                    f"Token expired and cannot be refreshed: {expired.message}"
                ) from expired

            logger.info(f"Token expired, attempting to refresh (authMethod: {bundle.auth_method.value})...")
            try:
                tokens = await self.refresher.refresh(bundle)
            except (RefreshError, ConfigurationError) as e:
                logger.error(f"Token refresh failed: {e.message}")
                raise ReauthenticationRequiredError(
                    f"Token expired and refresh failed: {e.message}"
                ) from expired

        updated = bundle.with_refreshed(tokens, self.clock())
        logger.info("Token refreshed, retrying verification...")
        snapshot = await self.verifier.verify(updated.access_token, updated.idp)
        return StatusResult(snapshot=snapshot, bundle=updated, refreshed=True, tokens=tokens)

"""Turns an access token into a verified account snapshot"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from portal import PortalClient
from utils.errors import (
    AccountBannedError,
    AuthorizationExpiredError,
    ConfigurationError,
    ProtocolError,
    VerificationError,
)
from .models import AccountSnapshot, Provider, now_ms
from .usage import build_snapshot

logger = logging.getLogger(__name__)

USAGE_OPERATION = "GetUserUsageAndLimits"
USER_INFO_OPERATION = "GetUserInfo"
ORIGIN = "KIRO_IDE"


class CredentialVerifier:
    """Identity + usage lookup against the portal RPC service"""

    def __init__(self, portal: Optional[PortalClient] = None, clock: Callable[[], int] = now_ms):
        self.portal = portal or PortalClient()
        self.clock = clock

    async def fetch_user_info(self, access_token: str, idp: str) -> Optional[Dict[str, Any]]:
        """GetUserInfo; a failure is logged and yields None"""
        try:
            return await self.portal.call(USER_INFO_OPERATION, {"origin": ORIGIN}, access_token, idp)
        except ProtocolError as e:
            logger.warning(f"GetUserInfo failed, continuing without identity: {e.message}")
            return None

    async def fetch_usage(self, access_token: str, idp: str) -> Dict[str, Any]:
        return await self.portal.call(
            USAGE_OPERATION,
            {"isEmailRequired": True, "origin": ORIGIN},
            access_token,
            idp,
        )

    async def verify(self, access_token: str, idp: str = Provider.BUILDER_ID.value) -> AccountSnapshot:
        """Look up identity and usage concurrently and normalise them

        Raises:
            ConfigurationError: No access token
            AuthorizationExpiredError: Usage lookup returned 401
            AccountBannedError: Account suspended
            VerificationError: Any other usage lookup failure
        """
        if not access_token:
            raise ConfigurationError("Missing accessToken")

        try:
            user_info, usage = await asyncio.gather(
                self.fetch_user_info(access_token, idp),
                self.fetch_usage(access_token, idp),
            )
        except (AuthorizationExpiredError, AccountBannedError):
            raise
        except ProtocolError as e:
            raise VerificationError(f"Usage lookup failed: {e.message}") from e

        snapshot = build_snapshot(usage, user_info, idp, self.clock())
        logger.info(
            f"Verified {snapshot.email or 'unknown account'}: {snapshot.subscription.type}, "
            f"{snapshot.usage.current}/{snapshot.usage.limit} credits"
        )
        return snapshot

"""Account credential refresh, verification and the service facade"""

from .models import (
    AccountSnapshot,
    AuthMethod,
    BonusGrant,
    CredentialBundle,
    Provider,
    RefreshedTokens,
    ResourceDetail,
    SubscriptionInfo,
    UsageSummary,
)
from .refresher import TokenRefresher
from .usage import build_snapshot, subscription_type_from_title, summarize_usage
from .verifier import CredentialVerifier
from .status import StatusChecker, StatusResult
from .batch import BatchReport, BatchVerifier, VerifiedAccount
from .service import AccountAuthService

__all__ = [
    "AccountSnapshot",
    "AuthMethod",
    "BonusGrant",
    "CredentialBundle",
    "Provider",
    "RefreshedTokens",
    "ResourceDetail",
    "SubscriptionInfo",
    "UsageSummary",
    "TokenRefresher",
    "build_snapshot",
    "subscription_type_from_title",
    "summarize_usage",
    "CredentialVerifier",
    "StatusChecker",
    "StatusResult",
    "BatchReport",
    "BatchVerifier",
    "VerifiedAccount",
    "AccountAuthService",
]

"""Data models for account credentials and verified account snapshots"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

import settings
from utils.errors import ConfigurationError


class AuthMethod(str, Enum):
    """How an account was created; selects the refresh scheme"""
    OIDC = "OIDC"
    SOCIAL = "Social"
    WEB_OAUTH = "WebOAuth"


class Provider(str, Enum):
    BUILDER_ID = "BuilderId"
    GITHUB = "Github"
    GOOGLE = "Google"


# Spellings seen in exported credential files
_AUTH_METHOD_ALIASES = {
    "oidc": AuthMethod.OIDC,
    "idc": AuthMethod.OIDC,
    "builderid": AuthMethod.OIDC,
    "social": AuthMethod.SOCIAL,
    "weboauth": AuthMethod.WEB_OAUTH,
    "web_oauth": AuthMethod.WEB_OAUTH,
}

_PROVIDER_ALIASES = {
    "builderid": Provider.BUILDER_ID,
    "github": Provider.GITHUB,
    "google": Provider.GOOGLE,
}


def parse_auth_method(value: Optional[str]) -> AuthMethod:
    """Parse an auth method name; a missing value means OIDC"""
    if not value:
        return AuthMethod.OIDC
    try:
        return _AUTH_METHOD_ALIASES[str(value).strip().lower()]
    except KeyError:
        raise ConfigurationError(f"Unknown authMethod: {value}") from None


def parse_provider(value: Optional[str]) -> Optional[Provider]:
    if not value:
        return None
    try:
        return _PROVIDER_ALIASES[str(value).strip().lower()]
    except KeyError:
        raise ConfigurationError(f"Unknown provider: {value}") from None


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RefreshedTokens:
    """Result of one successful refresh

    Attributes:
        access_token: New access token
        refresh_token: Refresh/session token to store (unchanged when the
            backend did not rotate it)
        expires_in: Lifetime of the access token in seconds
        csrf_token: Rotated CSRF token (social / web login)
        profile_arn: Profile ARN reported by the social auth service
    """
    access_token: str
    refresh_token: str
    expires_in: int = 3600
    csrf_token: Optional[str] = None
    profile_arn: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
            "csrfToken": self.csrf_token,
            "profileArn": self.profile_arn,
        }


@dataclass
class CredentialBundle:
    """Secret material of one account

    ``refresh_token`` is an OIDC refresh token for OIDC accounts and the
    cookie-borne session token for Social / WebOAuth accounts.
    """
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    auth_method: AuthMethod = AuthMethod.OIDC
    provider: Optional[Provider] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    csrf_token: Optional[str] = None
    region: str = field(default_factory=lambda: settings.DEFAULT_REGION)
    expires_at: Optional[int] = None  # epoch millis
    profile_arn: Optional[str] = None
    account_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def idp(self) -> str:
        """Identity provider name sent to the backend"""
        if self.provider is not None:
            return self.provider.value
        return Provider.BUILDER_ID.value

    def can_refresh(self) -> bool:
        """Whether this bundle carries what its scheme needs to refresh"""
        if not self.refresh_token:
            return False
        if self.auth_method == AuthMethod.SOCIAL:
            return True
        if self.auth_method == AuthMethod.OIDC:
            return bool(self.client_id and self.client_secret)
        if self.auth_method == AuthMethod.WEB_OAUTH:
            return bool(self.csrf_token and self.access_token and self.provider)
        return False

    def with_refreshed(self, tokens: RefreshedTokens, now: Optional[int] = None) -> "CredentialBundle":
        """Copy of this bundle carrying the refreshed tokens"""
        now = now if now is not None else now_ms()
        return replace(
            self,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token or self.refresh_token,
            csrf_token=tokens.csrf_token or self.csrf_token,
            profile_arn=tokens.profile_arn or self.profile_arn,
            expires_at=now + int(tokens.expires_in) * 1000,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialBundle":
        """Build a bundle from camelCase credential JSON

        Raises:
            ConfigurationError: Unknown authMethod or provider
        """
        auth_method = parse_auth_method(data.get("authMethod"))
        provider = parse_provider(data.get("provider") or data.get("idp"))
        if provider is None and auth_method == AuthMethod.OIDC:
            provider = Provider.BUILDER_ID
        return cls(
            access_token=data.get("accessToken") or None,
            refresh_token=data.get("refreshToken") or None,
            auth_method=auth_method,
            provider=provider,
            client_id=data.get("clientId") or None,
            client_secret=data.get("clientSecret") or None,
            csrf_token=data.get("csrfToken") or None,
            region=data.get("region") or settings.DEFAULT_REGION,
            expires_at=data.get("expiresAt"),
            profile_arn=data.get("profileArn"),
            account_id=data.get("id") or data.get("accountId"),
            email=data.get("email"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "authMethod": self.auth_method.value,
            "provider": self.provider.value if self.provider else None,
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "csrfToken": self.csrf_token,
            "region": self.region,
            "expiresAt": self.expires_at,
            "profileArn": self.profile_arn,
            "accountId": self.account_id,
            "email": self.email,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class BonusGrant:
    code: str
    name: str
    current: float
    limit: float
    expires_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "current": self.current,
            "limit": self.limit,
            "expiresAt": self.expires_at,
        }


@dataclass
class ResourceDetail:
    resource_type: Optional[str] = None
    display_name: Optional[str] = None
    display_name_plural: Optional[str] = None
    currency: Optional[str] = None
    unit: Optional[str] = None
    overage_rate: Optional[float] = None
    overage_cap: Optional[float] = None
    overage_enabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resourceType": self.resource_type,
            "displayName": self.display_name,
            "displayNamePlural": self.display_name_plural,
            "currency": self.currency,
            "unit": self.unit,
            "overageRate": self.overage_rate,
            "overageCap": self.overage_cap,
            "overageEnabled": self.overage_enabled,
        }


@dataclass
class UsageSummary:
    """Credit quota split into base, free trial and bonus components"""
    current: float = 0
    limit: float = 0
    percent_used: float = 0
    base_limit: float = 0
    base_current: float = 0
    free_trial_limit: float = 0
    free_trial_current: float = 0
    free_trial_expiry: Optional[int] = None
    bonuses: List[BonusGrant] = field(default_factory=list)
    next_reset_date: Optional[int] = None
    resource_detail: Optional[ResourceDetail] = None
    last_updated: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "limit": self.limit,
            "percentUsed": self.percent_used,
            "lastUpdated": self.last_updated,
            "baseLimit": self.base_limit,
            "baseCurrent": self.base_current,
            "freeTrialLimit": self.free_trial_limit,
            "freeTrialCurrent": self.free_trial_current,
            "freeTrialExpiry": self.free_trial_expiry,
            "bonuses": [bonus.to_dict() for bonus in self.bonuses],
            "nextResetDate": self.next_reset_date,
            "resourceDetail": self.resource_detail.to_dict() if self.resource_detail else None,
        }


@dataclass
class SubscriptionInfo:
    type: str = "Free"
    title: str = "Free"
    raw_type: Optional[str] = None
    expires_at: Optional[int] = None
    days_remaining: Optional[int] = None
    upgrade_capability: Optional[str] = None
    overage_capability: Optional[str] = None
    management_target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "rawType": self.raw_type,
            "expiresAt": self.expires_at,
            "daysRemaining": self.days_remaining,
            "upgradeCapability": self.upgrade_capability,
            "overageCapability": self.overage_capability,
            "managementTarget": self.management_target,
        }


@dataclass
class AccountSnapshot:
    """Verified account state, recomputed on every verification"""
    status: str
    email: Optional[str]
    user_id: Optional[str]
    idp: str
    header_version: int
    subscription: SubscriptionInfo
    usage: UsageSummary
    user_status: Optional[str] = None
    feature_flags: Optional[List[str]] = None

    @property
    def subscription_type(self) -> str:
        return self.subscription.type

    @property
    def days_remaining(self) -> Optional[int]:
        return self.subscription.days_remaining

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "email": self.email,
            "userId": self.user_id,
            "idp": self.idp,
            "userStatus": self.user_status,
            "featureFlags": self.feature_flags,
            "headerVersion": self.header_version,
            "subscriptionType": self.subscription.type,
            "subscriptionTitle": self.subscription.title,
            "nextResetDate": self.usage.next_reset_date,
            "daysRemaining": self.subscription.days_remaining,
            "usage": self.usage.to_dict(),
            "subscription": self.subscription.to_dict(),
        }

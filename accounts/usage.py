"""Normalisation of GetUserUsageAndLimits / GetUserInfo responses"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from headers.constants import get_header_version_for_idp
from .models import (
    AccountSnapshot,
    BonusGrant,
    ResourceDetail,
    SubscriptionInfo,
    UsageSummary,
    now_ms,
)

ACTIVE = "ACTIVE"
CREDIT_RESOURCE_TYPE = "CREDIT"
CREDIT_DISPLAY_NAME = "Credits"
MS_PER_DAY = 24 * 60 * 60 * 1000
# Epoch values below this are seconds
SECONDS_THRESHOLD = 10_000_000_000

# Checked in order against the upper-cased subscription title
_SUBSCRIPTION_KEYWORDS = (
    ("PRO", "Pro"),
    ("ENTERPRISE", "Enterprise"),
    ("TEAMS", "Teams"),
)


def find_credit_line(breakdown: Optional[List[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    for item in breakdown or []:
        if item.get("resourceType") == CREDIT_RESOURCE_TYPE or item.get("displayName") == CREDIT_DISPLAY_NAME:
            return item
    return None


def subscription_type_from_title(title: Optional[str]) -> str:
    """Map a free-form subscription title to Pro / Enterprise / Teams / Free"""
    upper = (title or "").upper()
    for keyword, subscription_type in _SUBSCRIPTION_KEYWORDS:
        if keyword in upper:
            return subscription_type
    return "Free"


def to_milliseconds(value: Any) -> Optional[int]:
    """Normalise a backend timestamp (epoch seconds, epoch ms or datetime) to epoch ms"""
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if not value or isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value * 1000) if value < SECONDS_THRESHOLD else int(value)


def days_until(timestamp_ms: Optional[Any], now: int) -> Optional[int]:
    if not isinstance(timestamp_ms, (int, float)) or isinstance(timestamp_ms, bool) or not timestamp_ms:
        return None
    return max(0, math.ceil((timestamp_ms - now) / MS_PER_DAY))


def summarize_usage(response: Dict[str, Any], now: Optional[int] = None) -> UsageSummary:
    """Split the CREDIT line into base, active free trial and active bonuses

    Totals are the sum of all counted components; inactive grants are
    excluded from both current and limit.
    """
    now = now if now is not None else now_ms()
    credit = find_credit_line(response.get("usageBreakdownList")) or {}

    base_limit = credit.get("usageLimit") or 0
    base_current = credit.get("currentUsage") or 0

    free_trial_limit = 0
    free_trial_current = 0
    free_trial = credit.get("freeTrialInfo") or {}
    free_trial_expiry = to_milliseconds(free_trial.get("freeTrialExpiry"))
    if free_trial.get("freeTrialStatus") == ACTIVE:
        free_trial_limit = free_trial.get("usageLimit") or 0
        free_trial_current = free_trial.get("currentUsage") or 0

    bonuses = [
        BonusGrant(
            code=bonus.get("bonusCode") or "",
            name=bonus.get("displayName") or "",
            current=bonus.get("currentUsage") or 0,
            limit=bonus.get("usageLimit") or 0,
            expires_at=to_milliseconds(bonus.get("expiresAt")),
        )
        for bonus in credit.get("bonuses") or []
        if bonus.get("status") == ACTIVE
    ]

    total_limit = base_limit + free_trial_limit + sum(b.limit for b in bonuses)
    total_current = base_current + free_trial_current + sum(b.current for b in bonuses)

    resource_detail = None
    if credit:
        resource_detail = ResourceDetail(
            resource_type=credit.get("resourceType"),
            display_name=credit.get("displayName"),
            display_name_plural=credit.get("displayNamePlural"),
            currency=credit.get("currency"),
            unit=credit.get("unit"),
            overage_rate=credit.get("overageRate"),
            overage_cap=credit.get("overageCap"),
            overage_enabled=bool((response.get("overageConfiguration") or {}).get("overageEnabled", False)),
        )

    return UsageSummary(
        current=total_current,
        limit=total_limit,
        percent_used=total_current / total_limit if total_limit > 0 else 0,
        base_limit=base_limit,
        base_current=base_current,
        free_trial_limit=free_trial_limit,
        free_trial_current=free_trial_current,
        free_trial_expiry=free_trial_expiry,
        bonuses=bonuses,
        next_reset_date=to_milliseconds(response.get("nextDateReset")),
        resource_detail=resource_detail,
        last_updated=now,
    )


def summarize_subscription(response: Dict[str, Any], now: Optional[int] = None) -> SubscriptionInfo:
    now = now if now is not None else now_ms()
    info = response.get("subscriptionInfo") or {}
    title = info.get("subscriptionTitle") or "Free"
    next_reset = to_milliseconds(response.get("nextDateReset"))
    days_remaining = days_until(next_reset, now)
    return SubscriptionInfo(
        type=subscription_type_from_title(title),
        title=title,
        raw_type=info.get("type"),
        expires_at=next_reset if days_remaining is not None else None,
        days_remaining=days_remaining,
        upgrade_capability=info.get("upgradeCapability"),
        overage_capability=info.get("overageCapability"),
        management_target=info.get("subscriptionManagementTarget"),
    )


def build_snapshot(
    usage_response: Dict[str, Any],
    user_info: Optional[Dict[str, Any]],
    idp: str,
    now: Optional[int] = None,
) -> AccountSnapshot:
    """Assemble the account snapshot

    Args:
        usage_response: Decoded GetUserUsageAndLimits response
        user_info: Decoded GetUserInfo response, or None when that lookup failed
        idp: Identity provider the calls were made with
    """
    now = now if now is not None else now_ms()
    user_info = user_info or {}
    usage_user = usage_response.get("userInfo") or {}

    user_status = user_info.get("status")
    status = "active" if not user_status or user_status == "Active" else "error"
    effective_idp = user_info.get("idp") or idp

    return AccountSnapshot(
        status=status,
        email=usage_user.get("email") or user_info.get("email"),
        user_id=usage_user.get("userId") or user_info.get("userId"),
        idp=effective_idp,
        header_version=get_header_version_for_idp(effective_idp),
        subscription=summarize_subscription(usage_response, now),
        usage=summarize_usage(usage_response, now),
        user_status=user_status,
        feature_flags=user_info.get("featureFlags"),
    )

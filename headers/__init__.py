"""HTTP headers and identification package for kiro-account-auth"""

from .constants import (
    BROWSER_HEADERS,
    BROWSER_USER_AGENT,
    SOCIAL_REFRESH_USER_AGENT,
    get_header_version_for_idp,
)
from .user_agent import UserAgentProvider

__all__ = [
    "BROWSER_HEADERS",
    "BROWSER_USER_AGENT",
    "SOCIAL_REFRESH_USER_AGENT",
    "get_header_version_for_idp",
    "UserAgentProvider",
]

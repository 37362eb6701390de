"""
Builder ID (AWS SSO OIDC) constants
"""
import settings

CLIENT_NAME = "Kiro-Cloud-Auth"
CLIENT_TYPE = "public"

# The five backend capability scopes
SCOPES = [
    "codewhisperer:completions",
    "codewhisperer:analysis",
    "codewhisperer:conversations",
    "codewhisperer:transformations",
    "codewhisperer:taskassist",
]

DEVICE_CODE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
REFRESH_TOKEN_GRANT_TYPE = "refresh_token"
GRANT_TYPES = [DEVICE_CODE_GRANT_TYPE, REFRESH_TOKEN_GRANT_TYPE]

# Device-token poll error codes (HTTP 400 "error" field)
AUTHORIZATION_PENDING = "authorization_pending"
SLOW_DOWN = "slow_down"
EXPIRED_TOKEN = "expired_token"
ACCESS_DENIED = "access_denied"

# Seconds added to the poll interval on slow_down
SLOW_DOWN_INCREMENT = 5


def oidc_base_url(region: str) -> str:
    return settings.OIDC_BASE_TEMPLATE.format(region=region or settings.DEFAULT_REGION)

"""HTTP Request Headers and Identification Constants

These values make requests look like they come from the Kiro IDE and the
browsers the backend expects to see during login.
"""

from typing import Dict

# SDK version embedded in x-amz-user-agent (aws-sdk-js/<version> KiroIDE-...)
SDK_JS_VERSION = "1.0.0"

# Social refresh endpoint rejects any other User-Agent
SOCIAL_REFRESH_USER_AGENT = "KiroBatchLoginCLI/1.0.0"

# Desktop Chrome on Windows 10, used for the AWS-SSO-fronted OIDC calls
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/143.0.0.0 Safari/537.36"
)

BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "application/json",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate, br",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "cross-site",
}

# Referer expected by the accept_user_code / associate_token endpoints
SSO_REFERER = "https://view.awsapps.com/"

# RPC (smithy rpc-v2-cbor) framing headers
CBOR_CONTENT_TYPE = "application/cbor"
SMITHY_PROTOCOL = "rpc-v2-cbor"
# No client-side HTTP retries; retrying is the caller's decision
SDK_REQUEST_ATTEMPT = "attempt=1; max=1"

# API header version per identity provider
IDP_HEADER_VERSIONS: Dict[str, int] = {
    "AWSIdC": 2,
    "BuilderId": 2,
    "Github": 1,
    "Google": 1,
}
DEFAULT_HEADER_VERSION = 1


def get_header_version_for_idp(idp: str) -> int:
    """Return the API header version (1 or 2) for an identity provider"""
    return IDP_HEADER_VERSIONS.get(idp, DEFAULT_HEADER_VERSION)

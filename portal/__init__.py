"""KiroWebPortalService CBOR RPC transport"""

from .client import PortalClient, build_identity_cookie, classify_error, generate_invocation_id
from .cookies import parse_set_cookie_headers, response_cookies

__all__ = [
    "PortalClient",
    "build_identity_cookie",
    "classify_error",
    "generate_invocation_id",
    "parse_set_cookie_headers",
    "response_cookies",
]

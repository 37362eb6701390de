"""
Social (Google / GitHub) PKCE login module
"""
from .constants import SOCIAL_PROVIDERS, LOGIN_URL, TOKEN_URL, REFRESH_URL, REDIRECT_URI
from .pkce import PKCEPair, compute_challenge, create_state, generate_pkce
from .authorization import CallbackParams, build_login_url, parse_callback_url
from .token_exchange import exchange_code
from .token_refresh import refresh_social_token
from .browser_handoff import BrowserLauncher
from .flow import PkceAuthorizationFlow, PkceFlowState, PkceSession, PkceVariant

__all__ = [
    # Constants
    "SOCIAL_PROVIDERS",
    "LOGIN_URL",
    "TOKEN_URL",
    "REFRESH_URL",
    "REDIRECT_URI",
    # PKCE
    "PKCEPair",
    "compute_challenge",
    "create_state",
    "generate_pkce",
    # Authorization
    "CallbackParams",
    "build_login_url",
    "parse_callback_url",
    # Token endpoints
    "exchange_code",
    "refresh_social_token",
    # Browser hand-off
    "BrowserLauncher",
    # Flow
    "PkceAuthorizationFlow",
    "PkceFlowState",
    "PkceSession",
    "PkceVariant",
]

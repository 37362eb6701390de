"""
Embedded web login (KiroWebPortalService InitiateLogin / ExchangeToken)
"""
from .constants import REDIRECT_URI
from .login import exchange_token, initiate_login
from .token_refresh import build_session_cookie, refresh_web_oauth_token
from .window import AuthWindow, PlaywrightAuthWindow, is_redirect_callback

__all__ = [
    "REDIRECT_URI",
    "exchange_token",
    "initiate_login",
    "build_session_cookie",
    "refresh_web_oauth_token",
    "AuthWindow",
    "PlaywrightAuthWindow",
    "is_redirect_callback",
]

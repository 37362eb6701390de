"""
Deep-link login URL construction and callback URL parsing
"""
from typing import NamedTuple, Optional
from urllib.parse import parse_qs, urlencode, urlparse

from .constants import LOGIN_URL, REDIRECT_URI


class CallbackParams(NamedTuple):
    """Query parameters carried by a redirect back to the client"""
    code: Optional[str]
    state: Optional[str]
    error: Optional[str]


def build_login_url(provider: str, code_challenge: str, state: str, redirect_uri: str = REDIRECT_URI) -> str:
    """
    Build the auth-service login URL for an externally opened browser.

    Args:
        provider: "Google" or "Github"
        code_challenge: S256 PKCE challenge
        state: Correlation/CSRF state
        redirect_uri: Custom-scheme URI the browser returns to

    Returns:
        Full login URL
    """
    params = {
        "idp": provider,
        "redirect_uri": redirect_uri,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "state": state,
    }
    return f"{LOGIN_URL}?{urlencode(params)}"


def parse_callback_url(url: str) -> CallbackParams:
    """Extract code/state/error from a ``kiro://`` or https redirect URL"""
    query = parse_qs(urlparse(url).query)

    def first(name: str) -> Optional[str]:
        values = query.get(name)
        return values[0] if values else None

    return CallbackParams(code=first("code"), state=first("state"), error=first("error"))

"""
PKCE pair and state generation (RFC 7636, S256)
"""
import base64
import hashlib
import secrets
from typing import NamedTuple

from .constants import STATE_BYTES


class PKCEPair(NamedTuple):
    """PKCE code verifier and challenge pair"""
    verifier: str
    challenge: str


def compute_challenge(verifier: str) -> str:
    """base64url(SHA-256(verifier)) without padding"""
    digest = hashlib.sha256(verifier.encode('utf-8')).digest()
    return base64.urlsafe_b64encode(digest).decode('utf-8').rstrip('=')


def generate_pkce(num_bytes: int = 32) -> PKCEPair:
    """
    Generate a PKCE verifier from ``num_bytes`` random bytes and its challenge.

    32 bytes give a 43 character verifier, 64 bytes an 86 character one;
    both are within the 43-128 range required by RFC 7636.
    """
    verifier = secrets.token_urlsafe(num_bytes)[:128]
    return PKCEPair(verifier=verifier, challenge=compute_challenge(verifier))


def create_state() -> str:
    """Unguessable state parameter for CSRF protection"""
    return secrets.token_urlsafe(STATE_BYTES)

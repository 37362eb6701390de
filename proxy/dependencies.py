"""
Shared service instance for the endpoints.
"""
from functools import lru_cache

from accounts import AccountAuthService


@lru_cache(maxsize=1)
def get_service() -> AccountAuthService:
    """Process-wide service; overridden in tests via app.dependency_overrides"""
    return AccountAuthService()

"""
Endpoint handlers for the auth server.
"""
from .health import router as health_router
from .auth import router as auth_router
from .accounts import router as accounts_router

__all__ = [
    'health_router',
    'auth_router',
    'accounts_router',
]

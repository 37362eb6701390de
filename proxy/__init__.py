"""
Kiro account auth - HTTP facade package.

Exposes the login flows, token refresh, status checks and batch import
over a small FastAPI application.
"""
from .server import AuthServer
from .app import app, create_app

__version__ = "1.0.0"

__all__ = [
    'AuthServer',
    'app',
    'create_app',
]

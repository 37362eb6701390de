"""Shared utilities package for kiro-account-auth"""

from .errors import (
    AccountBannedError,
    AuthFlowError,
    AuthorizationDeniedError,
    AuthorizationExpiredError,
    ConfigurationError,
    FlowExpiredError,
    LoginCancelledError,
    NoActiveLoginError,
    ProtocolError,
    ReauthenticationRequiredError,
    RefreshError,
    StateMismatchError,
    VerificationError,
)
from .http import create_async_client, http_session
from .machine_id import MachineIdStore
from .sessions import LoginSessionRegistry, SessionSlot, login_sessions

__all__ = [
    "AccountBannedError",
    "AuthFlowError",
    "AuthorizationDeniedError",
    "AuthorizationExpiredError",
    "ConfigurationError",
    "FlowExpiredError",
    "LoginCancelledError",
    "NoActiveLoginError",
    "ProtocolError",
    "ReauthenticationRequiredError",
    "RefreshError",
    "StateMismatchError",
    "VerificationError",
    "create_async_client",
    "http_session",
    "MachineIdStore",
    "LoginSessionRegistry",
    "SessionSlot",
    "login_sessions",
]

"""
Builder ID (AWS SSO OIDC) authentication module
"""
from .constants import SCOPES, GRANT_TYPES, CLIENT_NAME, oidc_base_url
from .oidc import register_client, request_device_code, request_device_token
from .device_flow import (
    DeviceAuthorizationFlow,
    DeviceCodeInfo,
    DeviceFlowState,
    DevicePollResult,
    DeviceSession,
)
from .sso_import import import_from_sso_token
from .token_refresh import refresh_oidc_token

__all__ = [
    # Constants
    "SCOPES",
    "GRANT_TYPES",
    "CLIENT_NAME",
    "oidc_base_url",
    # OIDC endpoints
    "register_client",
    "request_device_code",
    "request_device_token",
    # Device flow
    "DeviceAuthorizationFlow",
    "DeviceCodeInfo",
    "DeviceFlowState",
    "DevicePollResult",
    "DeviceSession",
    # SSO import
    "import_from_sso_token",
    # Refresh
    "refresh_oidc_token",
]

"""Error taxonomy shared by the login flows, refreshers and verifiers

Every error carries a stable ``kind`` string so the service boundary can
report it without leaking exception types to callers.
"""

from typing import Any, Dict, Optional


class AuthFlowError(Exception):
    """Base class for all credential lifecycle errors"""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ConfigurationError(AuthFlowError):
    """A required field is missing; raised before any network call"""

    kind = "configuration"


class ProtocolError(AuthFlowError):
    """Transport or CBOR level failure talking to a backend endpoint"""

    kind = "protocol"

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        error_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.http_status = http_status
        self.error_type = error_type

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["httpStatus"] = self.http_status
        data["errorType"] = self.error_type
        return data


class AuthorizationExpiredError(ProtocolError):
    """HTTP 401; possibly recoverable by refreshing the token"""

    kind = "authorization_expired"


class AccountBannedError(ProtocolError):
    """Account suspended (HTTP 423); terminal, never fixed by a refresh"""

    kind = "banned"


class AuthorizationDeniedError(AuthFlowError):
    kind = "authorization_denied"


class FlowExpiredError(AuthFlowError):
    kind = "expired"


class StateMismatchError(AuthFlowError):
    kind = "state_mismatch"


class LoginCancelledError(AuthFlowError):
    kind = "cancelled"


class NoActiveLoginError(AuthFlowError):
    kind = "no_active_login"


class RefreshError(AuthFlowError):
    """A refresh strategy failed; the message is the strategy's own"""

    kind = "refresh"


class VerificationError(AuthFlowError):
    kind = "verification"


class ReauthenticationRequiredError(AuthFlowError):
    """Token expired and could not be refreshed; the account must be re-added"""

    kind = "reauthentication_required"

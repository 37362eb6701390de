"""Single-flight login session slots

Only one login of a given kind may be in flight per process. Starting a new
one supersedes the previous session; the caller tears the old one down.
"""

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class SessionSlot(Generic[T]):
    """Guarded slot holding at most one session"""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._session: Optional[T] = None

    @property
    def current(self) -> Optional[T]:
        with self._lock:
            return self._session

    def replace(self, session: T) -> Optional[T]:
        """Install ``session`` and return the one it superseded"""
        with self._lock:
            previous = self._session
            self._session = session
            return previous

    def take(self) -> Optional[T]:
        """Empty the slot and return whatever it held"""
        with self._lock:
            previous = self._session
            self._session = None
            return previous

    def release(self, session: T) -> bool:
        """Empty the slot only if it still holds ``session``"""
        with self._lock:
            if self._session is session:
                self._session = None
                return True
            return False

    def is_current(self, session: T) -> bool:
        with self._lock:
            return self._session is session


class LoginSessionRegistry:
    """One slot per login kind: device-code and PKCE"""

    def __init__(self):
        self.device: SessionSlot = SessionSlot("device")
        self.pkce: SessionSlot = SessionSlot("pkce")


# Process-wide registry used when a flow is not given its own
login_sessions = LoginSessionRegistry()

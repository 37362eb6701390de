"""Kiro IDE style x-amz-user-agent construction"""

import logging
from typing import Optional

import settings
from utils.machine_id import MachineIdStore
from .constants import SDK_JS_VERSION

logger = logging.getLogger(__name__)


class UserAgentProvider:
    """Builds the identification string sent with every backend call

    Format: ``aws-sdk-js/<sdk> KiroIDE-<app version>-<machine id>``
    """

    def __init__(
        self,
        app_version: Optional[str] = None,
        machine_ids: Optional[MachineIdStore] = None,
    ):
        self.app_version = app_version or settings.KIRO_APP_VERSION
        self.machine_ids = machine_ids or MachineIdStore()
        self._cached: Optional[str] = None

    def get_user_agent(self) -> str:
        """Return the user agent, reading the machine id once per provider"""
        if self._cached is None:
            machine_id = self.machine_ids.get_machine_id() or "unknown"
            self._cached = f"aws-sdk-js/{SDK_JS_VERSION} KiroIDE-{self.app_version}-{machine_id}"
            logger.debug(f"Using x-amz-user-agent: {self._cached}")
        return self._cached

import logging
import os
import platform
import uuid
from pathlib import Path
from typing import Optional

from settings import MACHINE_ID_FILE

logger = logging.getLogger(__name__)


class MachineIdStore:
    """Locally persisted machine identifier with owner-only file permissions"""

    def __init__(self, machine_id_file: Optional[str] = None):
        self.machine_id_path = Path(machine_id_file if machine_id_file else MACHINE_ID_FILE)

    def _ensure_secure_directory(self):
        """Create parent directory with secure permissions"""
        parent_dir = self.machine_id_path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def load_machine_id(self) -> Optional[str]:
        """Load the stored machine id, or None if missing or unreadable"""
        if not self.machine_id_path.exists():
            return None
        try:
            value = self.machine_id_path.read_text().strip()
        except OSError as e:
            logger.warning(f"Failed to read machine id from {self.machine_id_path}: {e}")
            return None
        return value or None

    def save_machine_id(self, machine_id: str):
        """Persist a machine id (file mode 600 on Unix-like systems)"""
        self._ensure_secure_directory()
        self.machine_id_path.write_text(machine_id)
        if platform.system() != "Windows":
            os.chmod(self.machine_id_path, 0o600)

    def get_machine_id(self) -> Optional[str]:
        """Return the stored machine id, generating and saving one on first use

        Returns None when the id can be neither read nor persisted.
        """
        machine_id = self.load_machine_id()
        if machine_id:
            return machine_id

        machine_id = str(uuid.uuid4())
        try:
            self.save_machine_id(machine_id)
        except OSError as e:
            logger.warning(f"Failed to persist machine id to {self.machine_id_path}: {e}")
            return None
        logger.info(f"Generated new machine id at {self.machine_id_path}")
        return machine_id

    @property
    def machine_id_file(self) -> Path:
        """Get the machine id file path"""
        return self.machine_id_path

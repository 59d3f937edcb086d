from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from config import config
from utils.logging_utils import logger
from models.schemas import StateSnapshot

class StateStore:
    """
    Opaque load/save of the application snapshot as a JSON file.
    The player core never serializes itself; it is rebuilt from what this returns.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path or config.state_file

    def load(self) -> Optional[StateSnapshot]:
        """
        Read the stored snapshot. A missing file means a first visit;
        an unreadable one is logged and treated the same way.
        """
        if not self.path.exists():
            return None

        try:
            snapshot = StateSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
            logger.info(f"Loaded state snapshot from {self.path}")
            return snapshot
        except (OSError, ValidationError) as e:
            logger.error(f"Failed to load state from {self.path}: {e}")
            return None

    def save(self, snapshot: StateSnapshot) -> bool:
        """Write the snapshot if saving is enabled; returns whether it was written"""
        if not config.save_state:
            return False

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
            logger.debug(f"State snapshot saved: {self.path}")
            return True
        except OSError as e:
            logger.error(f"Error saving state snapshot: {e}")
            return False

# Global service instance
state_store = StateStore()

"""
State File - JSON persistence for a managed control's state.

Plays the configuration engine's role of persisting the identity slot and
observed attributes between CLI invocations. One file holds one control.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Union

from models import ControlState

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


class StateFileError(Exception):
    """Raised when a state file exists but cannot be read."""


class StateFile:
    """Reads and writes a ControlState as JSON."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> ControlState:
        """
        Load the persisted state.

        A missing file is an untracked control.

        Raises:
            StateFileError: If the file is unreadable or not a state document
        """
        if not self.exists():
            return ControlState()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StateFileError(f"Cannot read state file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StateFileError(f"State file {self.path} does not hold an object")

        version = data.get("version", STATE_FORMAT_VERSION)
        if version != STATE_FORMAT_VERSION:
            raise StateFileError(
                f"Unsupported state file version {version} in {self.path}"
            )

        return ControlState.from_dict(data.get("control") or {})

    def save(self, state: ControlState) -> None:
        """Write the state, replacing the file atomically."""
        payload: Dict[str, Any] = {
            "version": STATE_FORMAT_VERSION,
            "updated_at": datetime.now(timezone.utc)
            .isoformat(timespec="seconds")
            .replace("+00:00", "Z"),
            "control": state.to_dict(),
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        tmp_path.write_text(
            json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8"
        )
        os.replace(tmp_path, self.path)
        logger.debug(f"Saved state to {self.path}")

"""
Progress stores: infrastructure adapters for the ProgressStore port.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from cramdeck.domain.models import ProgressState
from cramdeck.domain.ports import ProgressStore

from .codec import state_to_dict

logger = logging.getLogger(__name__)


class JsonProgressStore(ProgressStore):
    """
    Keeps the whole progress blob in a single JSON file.

    Saves go to a temp file in the same directory and are swapped in with
    os.replace, so a crash never leaves a half-written save behind.
    """

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            logger.info(f"No saved progress at {self.path}; starting fresh")
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read saved progress {self.path}: {e}")
            return None

        if not isinstance(raw, dict):
            logger.warning(f"Saved progress {self.path} is not a JSON object; ignoring it")
            return None
        # Older saves nest the blob under "state"
        if "state" in raw and isinstance(raw["state"], dict) and "decks" not in raw:
            raw = raw["state"]
        return raw

    def save(self, state: ProgressState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state_to_dict(state), indent=2, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(prefix=".progress-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved progress to {self.path}")


class MemoryProgressStore(ProgressStore):
    """Holds the encoded blob in memory. Used by tests."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self.data = initial
        self.saves = 0

    def load(self) -> dict[str, Any] | None:
        return self.data

    def save(self, state: ProgressState) -> None:
        self.data = state_to_dict(state)
        self.saves += 1

"""Optional on-disk persistence of the progress token.

Without a state file the token lives in memory only and a restart asks the
feed for its default window of recent changes. With one, the last token is
restored at startup and rewritten whenever it advances.
"""

import contextlib
import json
import logging
import os
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    """Load/save interface for the progress token."""

    def load(self) -> int:
        """Return the stored token, or 0 when nothing is stored."""

    def save(self, token: int) -> bool:
        """Persist ``token``; returns False when it could not be written."""


class JsonProgressStore:
    """Store the progress token in a small JSON document."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> int:
        data = self._load_json(default={})
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed progress state in %s", self.path)
            return 0
        try:
            token = int(data.get("last_change_number", 0))
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric progress token in %s", self.path)
            return 0
        if token < 0:
            return 0
        if token:
            logger.info("Restored progress token %s from %s", token, self.path)
        return token

    def save(self, token: int) -> bool:
        return self._save_json({"last_change_number": int(token)})

    def _load_json(self, default: Any) -> Any:
        if not os.path.exists(self.path):
            return default
        try:
            with open(self.path, encoding="utf-8") as file_handle:
                return json.load(file_handle)
        except Exception as exc:
            logger.error("Failed to load progress state from %s: %s", self.path, exc)
            return default

    def _save_json(self, data: Any) -> bool:
        """Write-then-rename so a crash never leaves a truncated file."""
        tmp = self.path + ".tmp"
        try:
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as file_handle:
                json.dump(data, file_handle, indent=2)
            os.replace(tmp, self.path)
            return True
        except Exception as exc:
            logger.error("Failed to save progress state to %s: %s", self.path, exc)
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            return False

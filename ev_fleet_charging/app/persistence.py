"""Persistence: snapshot vehicle records to a JSON file across restarts."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from .const import STATE_FILE

logger = logging.getLogger(__name__)


class Persistence:
    """Manages the vehicle snapshot file (default /data/vehicles.json)."""

    def __init__(self, path: str = STATE_FILE) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def save(self, state: dict[str, Any]) -> None:
        """Write the snapshot atomically.

        Args:
            state: Dictionary with a 'vehicles' list of documents.
        """
        try:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = self._path + ".tmp"
            with open(tmp_path, "w") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp_path, self._path)
            logger.debug("Snapshot saved to %s", self._path)
        except OSError as e:
            logger.warning("Failed to save snapshot: %s", e)

    def load(self) -> dict[str, Any] | None:
        """Read the snapshot.

        Returns:
            Snapshot dictionary, or None if the file doesn't exist or is corrupt.
        """
        if not os.path.exists(self._path):
            logger.info("No vehicle snapshot found at %s", self._path)
            return None

        try:
            with open(self._path) as f:
                state = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load snapshot from %s: %s", self._path, e)
            return None

        if not isinstance(state, dict):
            logger.warning("Ignoring snapshot %s: expected an object", self._path)
            return None
        logger.info("Loaded vehicle snapshot from %s", self._path)
        return state

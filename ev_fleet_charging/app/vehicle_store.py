"""In-memory vehicle record store with an optional JSON snapshot."""

from __future__ import annotations

import logging
import uuid

from .const import DEFAULT_INITIAL_CHARGE
from .models import VehicleRecord
from .persistence import Persistence
from .slugs import resolve_slug

logger = logging.getLogger(__name__)


class InMemoryVehicleStore:
    """Vehicle records kept in insertion order.

    When a Persistence is given, records are restored from it on load()
    and written back after every create().
    """

    def __init__(self, persistence: Persistence | None = None) -> None:
        self._persistence = persistence
        self._records: dict[str, VehicleRecord] = {}

    def load(self) -> int:
        """Restore records from the snapshot. Returns how many were loaded."""
        if self._persistence is None:
            return 0
        saved = self._persistence.load()
        if not saved:
            return 0

        loaded = 0
        for doc in saved.get("vehicles", []):
            try:
                record = VehicleRecord.from_dict(doc)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed vehicle document %r: %s", doc, e)
                continue
            self._records[record.id] = record
            loaded += 1
        logger.info("Restored %d vehicle(s) from %s", loaded, self._persistence.path)
        return loaded

    def list_all(self) -> list[VehicleRecord]:
        return list(self._records.values())

    def get(self, vehicle_id: str) -> VehicleRecord | None:
        return self._records.get(vehicle_id)

    def get_by_slug(self, slug: str) -> VehicleRecord | None:
        return resolve_slug(self._records.values(), slug)

    def search(self, prefix: str) -> list[VehicleRecord]:
        """Records whose nickname starts with prefix, case-insensitively."""
        needle = prefix.strip().lower()
        return [r for r in self._records.values() if r.nickname.lower().startswith(needle)]

    def create(self, nickname: str, model: str, battery_capacity: float) -> str:
        """Insert a vehicle at the default initial charge. Returns its id."""
        record = VehicleRecord(
            id=uuid.uuid4().hex,
            nickname=nickname,
            model=model,
            battery_capacity=float(battery_capacity),
            state_of_charge=DEFAULT_INITIAL_CHARGE,
        )
        self._records[record.id] = record
        logger.info("Created vehicle %s (%s) id=%s", nickname, model, record.id)
        self._save()
        return record.id

    def _save(self) -> None:
        if self._persistence is None:
            return
        self._persistence.save(
            {"vehicles": [record.to_dict() for record in self._records.values()]}
        )

"""Charge level simulator: the only writer of a vehicle's battery level."""

from __future__ import annotations

import logging
from dataclasses import replace

from .const import CHARGE_RATE_PER_SECOND, MAXIMUM_CHARGE_PERCENT
from .models import CarState

logger = logging.getLogger(__name__)


def format_charge_percentage(charge: float) -> str:
    """Charge with one decimal place, as shown on the dashboard."""
    return f"{charge:.1f}"


def charge_status_text(charge: float) -> str:
    """Human-readable band for a charge level."""
    if charge > 80:
        return "Excellent"
    if charge > 50:
        return "Good"
    if charge > 20:
        return "Low"
    return "Critical"


class ChargeLevelSimulator:
    """Holds one vehicle's battery level and advances it one tick at a time."""

    def __init__(self, car_state: CarState) -> None:
        self._car = replace(
            car_state,
            state_of_charge=min(
                max(float(car_state.state_of_charge), 0.0), MAXIMUM_CHARGE_PERCENT
            ),
        )

    @property
    def charge(self) -> float:
        return self._car.state_of_charge

    @property
    def car_state(self) -> CarState:
        """Snapshot of the car; mutating it does not affect the simulator."""
        return replace(self._car)

    @property
    def is_full(self) -> bool:
        return self._car.state_of_charge >= MAXIMUM_CHARGE_PERCENT

    def tick(self) -> bool:
        """Add one charge increment, clamped at 100%.

        Returns True if the level changed.
        """
        if self.is_full:
            return False
        self._car.state_of_charge = min(
            self._car.state_of_charge + CHARGE_RATE_PER_SECOND, MAXIMUM_CHARGE_PERCENT
        )
        logger.debug(
            "%s: charge %s%%",
            self._car.nickname,
            format_charge_percentage(self._car.state_of_charge),
        )
        return True

"""
Shared pytest fixtures for the EV fleet charging test suite.
"""

from datetime import datetime, timezone

import pytest

from ev_fleet_charging.app.config import AppConfig
from ev_fleet_charging.app.models import (
    CarState,
    ChargingStateWithEvents,
    Idle,
    VehicleRecord,
)
from ev_fleet_charging.app.orchestrator import ChargingOrchestrator, ChargingSession
from ev_fleet_charging.app.timers import TimerRegistry

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def start_time():
    """2024-01-01T12:00:00Z, the reference instant for every clock."""
    return START


@pytest.fixture
def car_state():
    """A half-charged test car."""
    return CarState(model="Test Car", nickname="Test", state_of_charge=50.0)


@pytest.fixture
def idle_state():
    """Plugged in, nothing pending, empty history."""
    return ChargingStateWithEvents(charger_state=Idle())


@pytest.fixture
def vehicle():
    """A vehicle record with a document-style id."""
    return VehicleRecord(
        id="k173x8f9g2h1j4k5l6m7n8p9",
        nickname="My Tesla Car",
        model="Tesla Model 3",
        battery_capacity=75,
        state_of_charge=50,
    )


@pytest.fixture
def make_orchestrator(vehicle):
    """Factory for an orchestrator on a simulated clock starting at START."""

    def _make(charge=50.0, history_limit=50, **config_overrides):
        vehicle.state_of_charge = charge
        session = ChargingSession.for_vehicle(vehicle, history_limit=history_limit)
        return ChargingOrchestrator(
            AppConfig(**config_overrides), session, TimerRegistry(START)
        )

    return _make

"""Charging orchestrator: turns simulated time and charge level into dispatched actions."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .config import AppConfig
from .const import (
    CHARGE_TICK_INTERVAL,
    EVENT_HISTORY_LIMIT,
    MAXIMUM_CHARGE_PERCENT,
    OPTIMAL_CHARGE_PERCENT,
    SCHEDULED_START_POLL_INTERVAL,
    SUSPENSION_POLL_INTERVAL,
)
from .models import (
    AwaitingScheduledCharge,
    ChargerState,
    ChargingEvent,
    ChargingScheduled,
    ChargingStateWithEvents,
    Idle,
    ScheduleSuspended,
    Unplugged,
    VehicleRecord,
    charger_state_to_dict,
    is_charging,
)
from .reducer import (
    CancelOverrideCharge,
    CancelScheduledCharge,
    ChargingAction,
    CompleteCharge,
    PlugInCar,
    ResumeFromSuspension,
    ScheduleCharge,
    StartScheduledCharge,
    TriggerOverride,
    UnplugCar,
    charging_states_reducer,
)
from .simulator import ChargeLevelSimulator, format_charge_percentage
from .slugs import generate_slug
from .timers import Timer, TimerRegistry

logger = logging.getLogger(__name__)


@dataclass
class ChargingSession:
    """Everything known about one vehicle's charging, owned by the orchestrator."""

    vehicle: VehicleRecord
    simulator: ChargeLevelSimulator
    state: ChargingStateWithEvents

    @classmethod
    def for_vehicle(
        cls, vehicle: VehicleRecord, history_limit: int | None = EVENT_HISTORY_LIMIT
    ) -> ChargingSession:
        """Start an unplugged session at the vehicle's stored charge level."""
        return cls(
            vehicle=vehicle,
            simulator=ChargeLevelSimulator(vehicle.to_car_state()),
            state=ChargingStateWithEvents(history_limit=history_limit),
        )

    @property
    def slug(self) -> str:
        return generate_slug(self.vehicle.nickname, self.vehicle.id)

    @property
    def charger_state(self) -> ChargerState:
        return self.state.charger_state

    @property
    def charge(self) -> float:
        return self.simulator.charge

    @property
    def event_history(self) -> tuple[ChargingEvent, ...]:
        return self.state.event_history

    def to_dict(self) -> dict[str, Any]:
        """Snapshot for publishing."""
        return {
            "vehicle": self.slug,
            "nickname": self.vehicle.nickname,
            "model": self.vehicle.model,
            "state_of_charge": round(self.charge, 1),
            "charger": charger_state_to_dict(self.charger_state),
            "events": [event.to_dict() for event in self.event_history],
        }


# Called after every transition (state_changed=True) and every charge change.
SessionListener = Callable[[ChargingSession, bool], None]


class ChargingOrchestrator:
    """Drives one charging session from user commands and simulated time.

    Every timer belongs to the charger state that armed it. Whenever the
    charger state changes all of them are cancelled before the timers for
    the new state are armed.
    """

    def __init__(
        self,
        config: AppConfig,
        session: ChargingSession,
        timers: TimerRegistry,
    ) -> None:
        self._config = config
        self.session = session
        self._timers = timers
        self._state_timers: list[Timer] = []
        self._listeners: list[SessionListener] = []
        self._rearm()

    @property
    def now(self) -> datetime:
        return self._timers.now

    @property
    def timers(self) -> TimerRegistry:
        return self._timers

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    # --- User commands ---

    def plug_in_car(self) -> None:
        self.dispatch(PlugInCar(timestamp=self.now))
        logger.info("Car plugged in")

    def unplug_car(self) -> None:
        was_charging = is_charging(self.session.charger_state)
        self.dispatch(UnplugCar(timestamp=self.now))
        if was_charging:
            logger.info("Car unplugged - charging stopped")

    def trigger_override(self) -> None:
        if not self._plugged_in("trigger_override"):
            return
        self.dispatch(TriggerOverride(timestamp=self.now))
        logger.info("Override charging started")

    def cancel_override_charge(self) -> None:
        if not is_charging(self.session.charger_state):
            self._ignored("cancel_override_charge")
            return
        self.dispatch(CancelOverrideCharge(timestamp=self.now))
        logger.info("Charging stopped")

    def cancel_scheduled_charge(self) -> None:
        if not self._plugged_in("cancel_scheduled_charge"):
            return
        self.dispatch(CancelScheduledCharge(timestamp=self.now))
        logger.warning("Scheduled charging suspended until tomorrow 6 AM")

    def schedule_charge(self) -> None:
        if not self._plugged_in("schedule_charge"):
            return
        self.dispatch(
            ScheduleCharge(car_state=self.session.simulator.car_state, timestamp=self.now)
        )
        state = self.session.charger_state
        if isinstance(state, AwaitingScheduledCharge):
            logger.info("Charging scheduled for %s", f"{state.charge.start_time:%H:%M:%S}")

    def stop(self) -> None:
        """Cancel every pending timer; the session keeps its last state."""
        self._timers.cancel_all()
        self._state_timers = []

    def _plugged_in(self, command: str) -> bool:
        if isinstance(self.session.charger_state, Unplugged):
            self._ignored(command)
            return False
        return True

    def _ignored(self, command: str) -> None:
        logger.debug(
            "%s had no effect in %s", command, self.session.charger_state.status.value
        )

    # --- Dispatch ---

    def dispatch(self, action: ChargingAction) -> ChargingStateWithEvents:
        """Apply an action to the session; actions are handled strictly one at a time."""
        previous = self.session.state
        new_state = charging_states_reducer(previous, action)
        if new_state is previous:
            logger.debug(
                "%s had no effect in %s",
                type(action).__name__,
                previous.charger_state.status.value,
            )
            return new_state

        self.session.state = new_state
        event = new_state.latest_event
        logger.info(
            "%s: %s -> %s (%s)",
            self.session.slug,
            previous.charger_state.status.value,
            new_state.charger_state.status.value,
            event.description if event else "",
        )

        if new_state.charger_state != previous.charger_state:
            self._rearm()
        self._notify(state_changed=True)
        self._check_completion()
        return self.session.state

    # --- Simulated time ---

    def advance(self, seconds: float) -> None:
        """Move simulated time forward, firing every trigger that falls due."""
        self._timers.advance(seconds)

    async def run(self) -> None:
        """Real-time driver: advance the simulated clock by elapsed wall time."""
        logger.info(
            "Charging orchestrator starting for %s (speed x%.1f)",
            self.session.slug,
            self._config.simulation_speed,
        )
        last = time.monotonic()
        while True:
            await asyncio.sleep(self._config.clock_resolution)
            current = time.monotonic()
            try:
                self.advance((current - last) * self._config.simulation_speed)
            except Exception:
                logger.exception("Error advancing charging simulation")
            last = current

    # --- Triggers ---

    def _rearm(self) -> None:
        """Tear down the previous state's timers and arm the current state's."""
        for timer in self._state_timers:
            self._timers.cancel(timer)
        self._state_timers = []

        state = self.session.charger_state
        if isinstance(state, Idle) and self.session.charge < OPTIMAL_CHARGE_PERCENT:
            self._state_timers.append(
                self._timers.call_later(
                    self._config.auto_schedule_delay,
                    self._on_auto_schedule,
                    "auto-schedule",
                )
            )
        elif isinstance(state, AwaitingScheduledCharge):
            self._state_timers.append(
                self._timers.call_every(
                    SCHEDULED_START_POLL_INTERVAL,
                    self._check_scheduled_start,
                    "scheduled-start-poll",
                )
            )
        elif isinstance(state, ScheduleSuspended):
            self._state_timers.append(
                self._timers.call_every(
                    SUSPENSION_POLL_INTERVAL,
                    self._check_suspension,
                    "suspension-poll",
                )
            )
        elif is_charging(state):
            self._state_timers.append(
                self._timers.call_every(CHARGE_TICK_INTERVAL, self._on_tick, "charge-tick")
            )

    def _on_auto_schedule(self) -> None:
        state = self.session.charger_state
        if isinstance(state, Idle) and self.session.charge < OPTIMAL_CHARGE_PERCENT:
            self.schedule_charge()

    def _check_scheduled_start(self) -> None:
        state = self.session.charger_state
        if isinstance(state, AwaitingScheduledCharge) and self.now >= state.charge.start_time:
            self.dispatch(StartScheduledCharge(timestamp=self.now))
            logger.info("Scheduled charging started")

    def _check_suspension(self) -> None:
        state = self.session.charger_state
        if isinstance(state, ScheduleSuspended) and self.now >= state.suspended_until:
            self.dispatch(ResumeFromSuspension(timestamp=self.now))
            logger.info("Schedule suspension expired - charging can be scheduled again")

    def _on_tick(self) -> None:
        if not self.session.simulator.tick():
            return
        self._notify(state_changed=False)
        self._check_completion()

    def _check_completion(self) -> None:
        """Stop charging once the battery is full or a scheduled target is reached."""
        state = self.session.charger_state
        if not is_charging(state):
            return
        charge = self.session.charge
        if charge >= MAXIMUM_CHARGE_PERCENT:
            self.dispatch(CompleteCharge(current_charge=charge, timestamp=self.now))
            logger.info("Charging complete - 100% charged!")
        elif (
            isinstance(state, ChargingScheduled)
            and charge >= state.charge.target_charge_percent
        ):
            self.dispatch(CompleteCharge(current_charge=charge, timestamp=self.now))
            logger.info(
                "Target charge of %s%% reached! (%s%%)",
                f"{state.charge.target_charge_percent:g}",
                format_charge_percentage(charge),
            )

    def _notify(self, state_changed: bool) -> None:
        for listener in self._listeners:
            try:
                listener(self.session, state_changed)
            except Exception:
                logger.exception("Error in session listener")

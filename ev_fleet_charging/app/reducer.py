"""Charging state machine: a pure reducer over charger state and its event log."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Union

from .const import (
    CHARGE_RATE_PER_SECOND,
    MAXIMUM_CHARGE_PERCENT,
    OPTIMAL_CHARGE_PERCENT,
    OVERRIDE_DURATION_MINUTES,
    SCHEDULE_LEAD_MINUTES,
    SUSPENSION_RESUME_HOUR,
)
from .models import (
    AwaitingScheduledCharge,
    CarState,
    ChargerState,
    ChargingEvent,
    ChargingEventDetails,
    ChargingEventType,
    ChargingOverride,
    ChargingScheduled,
    ChargingStateWithEvents,
    Idle,
    OverrideCharge,
    ScheduledCharge,
    ScheduleSuspended,
    Unplugged,
    is_charging,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Actions ---


@dataclass(frozen=True)
class UnplugCar:
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class PlugInCar:
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class TriggerOverride:
    timestamp: datetime


@dataclass(frozen=True)
class CancelOverrideCharge:
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class CancelScheduledCharge:
    timestamp: datetime


@dataclass(frozen=True)
class ScheduleCharge:
    car_state: CarState
    timestamp: datetime


@dataclass(frozen=True)
class StartScheduledCharge:
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ResumeFromSuspension:
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class CompleteCharge:
    """Stop charging because the battery reached its target or 100%."""

    current_charge: float
    timestamp: datetime = field(default_factory=_utc_now)


ChargingAction = Union[
    UnplugCar,
    PlugInCar,
    TriggerOverride,
    CancelOverrideCharge,
    CancelScheduledCharge,
    ScheduleCharge,
    StartScheduledCharge,
    ResumeFromSuspension,
    CompleteCharge,
]


# --- Time helpers ---


def estimate_charge_duration_seconds(
    current_charge_percent: float, target_charge_percent: float
) -> float:
    """Seconds needed to go from current to target at the simulated charge rate.

    Negative when the target is below the current level; callers decide
    what that means.
    """
    return (target_charge_percent - current_charge_percent) / CHARGE_RATE_PER_SECOND


def next_resume_time(now: datetime) -> datetime:
    """Next calendar day at 06:00:00.000, in the same timezone as now."""
    tomorrow = now + timedelta(days=1)
    return tomorrow.replace(
        hour=SUSPENSION_RESUME_HOUR, minute=0, second=0, microsecond=0
    )


# --- Reducer ---


def _append_event(
    state: ChargingStateWithEvents,
    charger_state: ChargerState,
    timestamp: datetime,
    event_type: ChargingEventType,
    description: str,
    details: ChargingEventDetails | None = None,
) -> ChargingStateWithEvents:
    """Return a new state with the transition applied and its event prepended."""
    sequence = state.event_count + 1
    event = ChargingEvent(
        id=f"{int(timestamp.timestamp() * 1000)}-{sequence}",
        timestamp=timestamp,
        type=event_type,
        description=description,
        details=details,
    )
    history = (event,) + state.event_history
    if state.history_limit is not None and state.history_limit > 0:
        history = history[: state.history_limit]
    return replace(
        state,
        charger_state=charger_state,
        event_history=history,
        event_count=sequence,
    )


def charging_states_reducer(
    state: ChargingStateWithEvents, action: ChargingAction
) -> ChargingStateWithEvents:
    """Apply one action. Unknown or inapplicable actions return state unchanged."""
    if isinstance(action, UnplugCar):
        return _append_event(
            state,
            Unplugged(),
            action.timestamp,
            ChargingEventType.CONNECTION,
            "Vehicle unplugged",
        )

    if isinstance(action, PlugInCar):
        return _append_event(
            state,
            Idle(),
            action.timestamp,
            ChargingEventType.CONNECTION,
            "Vehicle plugged in",
        )

    if isinstance(action, TriggerOverride):
        charge = OverrideCharge(
            start_time=action.timestamp,
            end_time=action.timestamp + timedelta(minutes=OVERRIDE_DURATION_MINUTES),
        )
        return _append_event(
            state,
            ChargingOverride(charge=charge),
            action.timestamp,
            ChargingEventType.OVERRIDE,
            f"Manual charging started until {charge.end_time:%H:%M}",
            ChargingEventDetails(start_time=charge.start_time, end_time=charge.end_time),
        )

    if isinstance(action, CancelOverrideCharge):
        return _append_event(
            state,
            Idle(),
            action.timestamp,
            ChargingEventType.CHARGING,
            "Charging stopped",
        )

    if isinstance(action, CancelScheduledCharge):
        suspended_until = next_resume_time(action.timestamp)
        return _append_event(
            state,
            ScheduleSuspended(suspended_until=suspended_until),
            action.timestamp,
            ChargingEventType.SCHEDULE,
            f"Scheduled charging suspended until {suspended_until:%Y-%m-%d %H:%M}",
            ChargingEventDetails(suspended_until=suspended_until),
        )

    if isinstance(action, ScheduleCharge):
        start_time = action.timestamp + timedelta(minutes=SCHEDULE_LEAD_MINUTES)
        duration = estimate_charge_duration_seconds(
            action.car_state.state_of_charge, OPTIMAL_CHARGE_PERCENT
        )
        charge = ScheduledCharge(
            start_time=start_time,
            end_time=start_time + timedelta(seconds=duration),
            target_charge_percent=OPTIMAL_CHARGE_PERCENT,
        )
        return _append_event(
            state,
            AwaitingScheduledCharge(charge=charge),
            action.timestamp,
            ChargingEventType.SCHEDULE,
            f"Charging scheduled for {start_time:%H:%M:%S} "
            f"(target {OPTIMAL_CHARGE_PERCENT:g}%)",
            ChargingEventDetails(
                target_charge=charge.target_charge_percent,
                current_charge=action.car_state.state_of_charge,
                start_time=charge.start_time,
                end_time=charge.end_time,
            ),
        )

    if isinstance(action, StartScheduledCharge):
        if not isinstance(state.charger_state, AwaitingScheduledCharge):
            return state
        charge = state.charger_state.charge
        return _append_event(
            state,
            ChargingScheduled(charge=charge),
            action.timestamp,
            ChargingEventType.CHARGING,
            "Scheduled charging started",
            ChargingEventDetails(
                target_charge=charge.target_charge_percent,
                start_time=charge.start_time,
                end_time=charge.end_time,
            ),
        )

    if isinstance(action, ResumeFromSuspension):
        return _append_event(
            state,
            Idle(),
            action.timestamp,
            ChargingEventType.SCHEDULE,
            "Schedule suspension ended",
        )

    if isinstance(action, CompleteCharge):
        current = state.charger_state
        if not is_charging(current):
            return state
        target = None
        if isinstance(current, ChargingScheduled):
            target = current.charge.target_charge_percent
        if action.current_charge >= MAXIMUM_CHARGE_PERCENT:
            description = "Charging complete - 100% charged"
        elif target is not None:
            description = f"Target charge of {target:g}% reached"
        else:
            description = f"Charging complete at {action.current_charge:.1f}%"
        return _append_event(
            state,
            Idle(),
            action.timestamp,
            ChargingEventType.COMPLETION,
            description,
            ChargingEventDetails(target_charge=target, current_charge=action.current_charge),
        )

    return state

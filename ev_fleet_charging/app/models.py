"""Data models for the EV fleet charging simulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Union

from .const import DEFAULT_INITIAL_CHARGE, EVENT_HISTORY_LIMIT


class ChargerStatus(Enum):
    """Charger status discriminant."""

    UNPLUGGED = "unplugged"
    IDLE = "idle"  # Plugged in, nothing pending
    AWAITING_SCHEDULED_CHARGE = "awaiting-scheduled-charge"
    CHARGING_SCHEDULED = "charging-scheduled"
    CHARGING_OVERRIDE = "charging-override"
    SCHEDULE_SUSPENDED = "schedule-suspended"


class ChargingEventType(Enum):
    """Timeline event categories."""

    CONNECTION = "connection"
    CHARGING = "charging"
    SCHEDULE = "schedule"
    OVERRIDE = "override"
    COMPLETION = "completion"


@dataclass(frozen=True)
class ScheduledCharge:
    """A planned charge window with a target level."""

    start_time: datetime
    end_time: datetime
    target_charge_percent: float


@dataclass(frozen=True)
class OverrideCharge:
    """A user-forced charge window."""

    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class Unplugged:
    status: ClassVar[ChargerStatus] = ChargerStatus.UNPLUGGED


@dataclass(frozen=True)
class Idle:
    status: ClassVar[ChargerStatus] = ChargerStatus.IDLE


@dataclass(frozen=True)
class AwaitingScheduledCharge:
    status: ClassVar[ChargerStatus] = ChargerStatus.AWAITING_SCHEDULED_CHARGE

    charge: ScheduledCharge


@dataclass(frozen=True)
class ChargingScheduled:
    status: ClassVar[ChargerStatus] = ChargerStatus.CHARGING_SCHEDULED

    charge: ScheduledCharge


@dataclass(frozen=True)
class ChargingOverride:
    status: ClassVar[ChargerStatus] = ChargerStatus.CHARGING_OVERRIDE

    charge: OverrideCharge


@dataclass(frozen=True)
class ScheduleSuspended:
    status: ClassVar[ChargerStatus] = ChargerStatus.SCHEDULE_SUSPENDED

    suspended_until: datetime


ChargerState = Union[
    Unplugged,
    Idle,
    AwaitingScheduledCharge,
    ChargingScheduled,
    ChargingOverride,
    ScheduleSuspended,
]

CHARGING_STATES = (ChargingScheduled, ChargingOverride)


def is_charging(state: ChargerState) -> bool:
    """Battery increments while one of the charging variants is active."""
    return isinstance(state, CHARGING_STATES)


def charger_state_to_dict(state: ChargerState) -> dict[str, Any]:
    """Serialize a charger state for publishing."""
    data: dict[str, Any] = {"status": state.status.value}
    if isinstance(state, (AwaitingScheduledCharge, ChargingScheduled)):
        data["charge"] = {
            "start_time": state.charge.start_time.isoformat(),
            "end_time": state.charge.end_time.isoformat(),
            "target_charge_percent": state.charge.target_charge_percent,
        }
    elif isinstance(state, ChargingOverride):
        data["charge"] = {
            "start_time": state.charge.start_time.isoformat(),
            "end_time": state.charge.end_time.isoformat(),
        }
    elif isinstance(state, ScheduleSuspended):
        data["suspended_until"] = state.suspended_until.isoformat()
    return data


@dataclass(frozen=True)
class ChargingEventDetails:
    """Numbers and times needed to reconstruct a transition from the log."""

    target_charge: float | None = None
    current_charge: float | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    suspended_until: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting unset fields."""
        data: dict[str, Any] = {}
        if self.target_charge is not None:
            data["target_charge"] = self.target_charge
        if self.current_charge is not None:
            data["current_charge"] = self.current_charge
        for key in ("start_time", "end_time", "suspended_until"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value.isoformat()
        return data


@dataclass(frozen=True)
class ChargingEvent:
    """A single entry of the charging timeline."""

    id: str
    timestamp: datetime
    type: ChargingEventType
    description: str
    details: ChargingEventDetails | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for publishing."""
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "description": self.description,
        }
        if self.details is not None:
            data["details"] = self.details.to_dict()
        return data


@dataclass(frozen=True)
class ChargingStateWithEvents:
    """Charger state and its audit trail, replaced together on every transition.

    event_history is newest first. event_count counts every event ever
    emitted and seeds event ids. history_limit of None keeps everything.
    """

    charger_state: ChargerState = field(default_factory=Unplugged)
    event_history: tuple[ChargingEvent, ...] = ()
    event_count: int = 0
    history_limit: int | None = EVENT_HISTORY_LIMIT

    @property
    def latest_event(self) -> ChargingEvent | None:
        return self.event_history[0] if self.event_history else None


@dataclass
class CarState:
    """Vehicle as seen by the simulator; only the charge level changes."""

    model: str
    nickname: str
    state_of_charge: float

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ("model", "nickname") and name in self.__dict__:
            raise AttributeError(f"CarState.{name} is read-only")
        super().__setattr__(name, value)


@dataclass
class VehicleRecord:
    """A vehicle row of the record store."""

    id: str
    nickname: str
    model: str
    battery_capacity: float
    state_of_charge: float = DEFAULT_INITIAL_CHARGE
    location: str | None = None
    last_updated: str | None = None  # ISO timestamp
    creation_time: float = field(
        default_factory=lambda: datetime.now(timezone.utc).timestamp() * 1000
    )

    def to_car_state(self) -> CarState:
        return CarState(
            model=self.model,
            nickname=self.nickname,
            state_of_charge=float(self.state_of_charge),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the document field layout."""
        data: dict[str, Any] = {
            "_id": self.id,
            "_creationTime": self.creation_time,
            "nickname": self.nickname,
            "model": self.model,
            "batteryCapacity": self.battery_capacity,
            "stateOfCharge": self.state_of_charge,
        }
        if self.location is not None:
            data["location"] = self.location
        if self.last_updated is not None:
            data["lastUpdated"] = self.last_updated
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VehicleRecord:
        """Build a record from the document field layout."""
        record = cls(
            id=str(data["_id"]),
            nickname=str(data["nickname"]),
            model=str(data["model"]),
            battery_capacity=float(data["batteryCapacity"]),
            state_of_charge=float(data.get("stateOfCharge", DEFAULT_INITIAL_CHARGE)),
            location=data.get("location"),
            last_updated=data.get("lastUpdated"),
        )
        if "_creationTime" in data:
            record.creation_time = float(data["_creationTime"])
        return record

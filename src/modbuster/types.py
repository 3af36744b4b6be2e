"""Core data model: link state, value kinds, field definitions, snapshots and time fields."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class LinkState(str, Enum):
    """States of the device link; register I/O is only attempted in CONNECTED."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ValueKind(str, Enum):
    """How a register pair is decoded."""

    UINT32 = "uint32"
    FLOAT32 = "float32"
    ERROR_FLAG = "error_flag"


@dataclass(frozen=True)
class FieldDef:
    """One named value in the register layout: low-word address and decode kind."""

    name: str
    address: int
    kind: ValueKind
    meta: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("field name cannot be empty")
        if self.address < 0:
            raise ValueError(f"address must be >= 0, got {self.address}")

    @property
    def is_flag(self) -> bool:
        return self.kind == ValueKind.ERROR_FLAG


@dataclass(frozen=True)
class TelemetrySnapshot:
    """
    Immutable projection of the register block at one instant.

    measurements and flags keep the order of the field map.
    """

    timestamp: datetime
    measurements: tuple[tuple[str, int | float], ...] = ()
    flags: tuple[tuple[str, bool], ...] = ()

    def measurement(self, name: str) -> int | float:
        for key, value in self.measurements:
            if key == name:
                return value
        raise KeyError(name)

    def flag(self, name: str) -> bool:
        for key, value in self.flags:
            if key == name:
                return value
        raise KeyError(name)

    @property
    def has_errors(self) -> bool:
        return any(value for _name, value in self.flags)

    def as_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "measurements": dict(self.measurements),
            "flags": dict(self.flags),
        }


@dataclass(frozen=True)
class TimeFields:
    """Local wall-clock time split into the six values written to the device."""

    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int

    def as_tuple(self) -> tuple[int, int, int, int, int, int]:
        return (self.year, self.month, self.day, self.hour, self.minute, self.second)


@dataclass
class ScheduleEntry:
    """A periodic action tracked by the scheduler."""

    name: str
    period_ms: int
    action: Any
    critical: bool = False
    next_due: float | None = None
    runs: int = 0
    failures: int = 0
    last_run: float | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.period_ms <= 0:
            raise ValueError(f"period_ms must be > 0, got {self.period_ms}")

    @property
    def period_s(self) -> float:
        return self.period_ms / 1000

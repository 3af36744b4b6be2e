"""EngineConfig: every tunable of the polling engine as one immutable value."""

from dataclasses import dataclass, field, replace
from typing import Any

from .block import DEFAULT_CAPACITY
from .errors import ConfigError
from .fieldmap import get_default_fieldmap
from .timewriter import TIME_ACK_ADDRESS, TIME_ACK_VALUE, TIME_BASE_ADDRESS, TIME_REGISTER_COUNT
from .transfer import DEFAULT_MAX_CHUNK
from .types import FieldDef


def _default_fields() -> tuple[FieldDef, ...]:
    return get_default_fieldmap().fields


@dataclass(frozen=True)
class EngineConfig:
    """
    Connection, polling window, cadence and layout settings.

    Periods are in milliseconds; a period of 0 disables that task.
    """

    host: str = "127.0.0.1"
    port: int = 502
    unit_id: int = 1
    timeout: float = 3.0
    retries: int = 1

    capacity: int = DEFAULT_CAPACITY
    read_start: int = 200
    read_count: int = 200
    max_chunk: int = DEFAULT_MAX_CHUNK

    sample_period_ms: int = 500
    deliver_period_ms: int = 30_000
    time_write_period_ms: int = 10_000
    tick_s: float = 0.02
    reconnect_delay_s: float = 2.0
    reconnect_on_write_failure: bool = False

    time_base_address: int = TIME_BASE_ADDRESS
    time_ack_address: int = TIME_ACK_ADDRESS
    time_ack_value: int = TIME_ACK_VALUE

    fields: tuple[FieldDef, ...] = field(default_factory=_default_fields)

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigError("host is required")
        if not 0 < self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        if not 0 <= self.unit_id <= 255:
            raise ConfigError(f"unit_id out of range 0-255: {self.unit_id}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.retries < 0:
            raise ConfigError(f"retries must be >= 0, got {self.retries}")
        if not 0 < self.max_chunk <= 125:
            raise ConfigError(f"max_chunk must be 1-125, got {self.max_chunk}")
        if self.read_start < 0 or self.read_count <= 0:
            raise ConfigError(f"invalid read range start={self.read_start} count={self.read_count}")
        if self.read_start + self.read_count > self.capacity:
            raise ConfigError(
                f"read range {self.read_start}..{self.read_start + self.read_count - 1} "
                f"exceeds capacity {self.capacity}"
            )
        for name in ("sample_period_ms", "deliver_period_ms", "time_write_period_ms"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.sample_period_ms == 0:
            raise ConfigError("sample_period_ms must be > 0")
        if self.tick_s <= 0:
            raise ConfigError(f"tick_s must be positive, got {self.tick_s}")
        if self.reconnect_delay_s < 0:
            raise ConfigError(f"reconnect_delay_s must be >= 0, got {self.reconnect_delay_s}")
        if self.time_base_address + TIME_REGISTER_COUNT > self.capacity:
            raise ConfigError(f"time registers at {self.time_base_address} exceed capacity {self.capacity}")
        if not 0 <= self.time_ack_address < self.capacity:
            raise ConfigError(f"time_ack_address out of range: {self.time_ack_address}")
        if not 0 <= self.time_ack_value <= 0xFFFF:
            raise ConfigError(f"time_ack_value out of range: {self.time_ack_value}")
        for f in self.fields:
            if f.address + 2 > self.capacity:
                raise ConfigError(f"field {f.name} at {f.address} exceeds capacity {self.capacity}")

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        """Copy with the non-None values of changes applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

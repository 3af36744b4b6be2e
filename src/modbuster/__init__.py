"""modbuster: resilient multi-cadence holding-register poller built on pymodbus."""

__version__ = "0.1.0"

from .block import RegisterBlock
from .config import EngineConfig
from .engine import PollingEngine
from .errors import (
    ConfigError,
    ConnectError,
    LinkLostError,
    ModbusterError,
    NotConnectedError,
    TransferError,
    UnknownFieldError,
)
from .fieldmap import FieldMap, get_default_fieldmap
from .scheduler import Scheduler
from .session import LinkSession
from .snapshot import SnapshotBuilder
from .timewriter import TimeWriter
from .transport import PymodbusTransport, Transport
from .types import FieldDef, LinkState, TelemetrySnapshot, TimeFields, ValueKind

__all__ = [
    "__version__",
    "RegisterBlock",
    "EngineConfig",
    "PollingEngine",
    "ConfigError",
    "ConnectError",
    "LinkLostError",
    "ModbusterError",
    "NotConnectedError",
    "TransferError",
    "UnknownFieldError",
    "FieldMap",
    "get_default_fieldmap",
    "Scheduler",
    "LinkSession",
    "SnapshotBuilder",
    "TimeWriter",
    "PymodbusTransport",
    "Transport",
    "FieldDef",
    "LinkState",
    "TelemetrySnapshot",
    "TimeFields",
    "ValueKind",
]

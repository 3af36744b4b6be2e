"""Console rendering: register table view and one-line snapshot formats."""

import json
from datetime import datetime
from typing import Sequence

from .types import TelemetrySnapshot

SNAPSHOT_FORMATS = ("text", "json", "csv")


def format_last_update(dt: datetime) -> str:
    return f"Last update: {dt.strftime('%Y-%m-%d %H:%M:%S')}"


def format_register_table(regs: Sequence[int], start: int, count: int, cols: int = 8) -> str:
    """
    Holding register view: one header line, then rows of cols registers
    prefixed by the address of the first register in the row.
    """
    if cols <= 0:
        raise ValueError(f"cols must be > 0, got {cols}")
    end = start + count
    lines = [f"Holding Registers {start} - {end - 1} (total {count})", ""]
    for addr in range(start, end, cols):
        cells = "".join(f"{regs[i]:>6}" for i in range(addr, min(addr + cols, end)))
        lines.append(f"{addr:>4}: {cells}")
    return "\n".join(lines)


def format_value(value: bool | int | float) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def csv_header(snapshot: TelemetrySnapshot) -> str:
    names = [name for name, _v in snapshot.measurements] + [name for name, _v in snapshot.flags]
    return "timestamp," + ",".join(names)


def format_snapshot(snapshot: TelemetrySnapshot, fmt: str = "text") -> str:
    """Render a snapshot as a text line, an NDJSON record, or a CSV row."""
    if fmt == "json":
        return json.dumps(snapshot.as_dict())
    pairs = list(snapshot.measurements) + list(snapshot.flags)
    timestamp = snapshot.timestamp.isoformat()
    if fmt == "text":
        return timestamp + " " + " ".join(f"{name}={format_value(v)}" for name, v in pairs)
    if fmt == "csv":
        return timestamp + "," + ",".join(format_value(v) for _name, v in pairs)
    raise ValueError(f"Invalid format {fmt!r}. Must be one of {', '.join(SNAPSHOT_FORMATS)}")

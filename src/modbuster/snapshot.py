"""SnapshotBuilder: project the register block onto a TelemetrySnapshot."""

from datetime import datetime
from typing import Callable, Iterable, Sequence

from .codec import decode
from .types import FieldDef, TelemetrySnapshot


def _local_now() -> datetime:
    return datetime.now().astimezone()


class SnapshotBuilder:
    """
    Pure projection of a register buffer through a list of FieldDef.

    Performs no I/O; must not run while a chunked read into the same block is
    in progress.
    """

    def __init__(
        self,
        fields: Iterable[FieldDef],
        now: Callable[[], datetime] = _local_now,
    ) -> None:
        self._fields = tuple(fields)
        self._now = now

    @property
    def fields(self) -> tuple[FieldDef, ...]:
        return self._fields

    def build(self, regs: Sequence[int]) -> TelemetrySnapshot:
        measurements: list[tuple[str, int | float]] = []
        flags: list[tuple[str, bool]] = []
        for f in self._fields:
            value = decode(regs, f.address, f.kind)
            if f.is_flag:
                flags.append((f.name, bool(value)))
            else:
                measurements.append((f.name, value))
        return TelemetrySnapshot(
            timestamp=self._now(),
            measurements=tuple(measurements),
            flags=tuple(flags),
        )

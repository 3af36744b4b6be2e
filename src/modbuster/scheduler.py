"""Cooperative multi-cadence scheduler driven by a monotonic clock."""

import logging
import time
from typing import Callable

from .errors import LinkLostError, ModbusterError
from .types import ScheduleEntry

logger = logging.getLogger(__name__)

DEFAULT_TICK_S = 0.02


class Scheduler:
    """
    Runs periodic actions from one loop.

    Entries are evaluated in the order they were added. An entry is due when
    now >= next_due; after running, next_due = now + period (no catch-up after
    a stall). A failing critical entry raises LinkLostError and ends the tick;
    a failing non-critical entry is logged and the tick continues.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        tick_s: float = DEFAULT_TICK_S,
    ) -> None:
        if tick_s <= 0:
            raise ValueError(f"tick_s must be > 0, got {tick_s}")
        self._clock = clock
        self._sleep = sleep
        self._tick_s = tick_s
        self._entries: list[ScheduleEntry] = []

    @property
    def entries(self) -> list[ScheduleEntry]:
        return list(self._entries)

    def add(
        self,
        name: str,
        period_ms: int,
        action: Callable[[], object],
        *,
        critical: bool = False,
    ) -> ScheduleEntry:
        if any(e.name == name for e in self._entries):
            raise ValueError(f"Duplicate schedule entry: {name}")
        entry = ScheduleEntry(name=name, period_ms=period_ms, action=action, critical=critical)
        self._entries.append(entry)
        return entry

    def get(self, name: str) -> ScheduleEntry:
        for entry in self._entries:
            if entry.name == name:
                return entry
        raise KeyError(name)

    def reset(self) -> None:
        """Make every entry due on the next run_pending()."""
        for entry in self._entries:
            entry.next_due = None

    def run_pending(self, now: float | None = None) -> list[str]:
        """Run every due entry once; returns the names that ran."""
        if now is None:
            now = self._clock()
        fired: list[str] = []
        for entry in self._entries:
            if entry.next_due is None:
                entry.next_due = now
            if now < entry.next_due:
                continue
            try:
                entry.action()
            except ModbusterError as e:
                entry.failures += 1
                entry.next_due = now + entry.period_s
                if entry.critical:
                    raise LinkLostError(entry.name, e) from e
                logger.warning("%s failed: %s", entry.name, e)
            except Exception as e:
                if entry.critical:
                    raise
                entry.failures += 1
                entry.next_due = now + entry.period_s
                logger.warning("%s failed: %s", entry.name, e, exc_info=True)
            else:
                entry.runs += 1
                entry.last_run = now
                entry.next_due = now + entry.period_s
            fired.append(entry.name)
        return fired

    def run(self, should_stop: Callable[[], bool] = lambda: False) -> None:
        """Loop run_pending() until should_stop() is true or a critical entry fails."""
        while not should_stop():
            self.run_pending()
            self._sleep(self._tick_s)

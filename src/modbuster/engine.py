"""PollingEngine: link, register block, schedule and consumers wired together."""

import logging
import time
from datetime import datetime
from typing import Any, Callable

from .block import RegisterBlock
from .config import EngineConfig
from .errors import ConnectError, LinkLostError
from .scheduler import Scheduler
from .session import LinkSession
from .snapshot import SnapshotBuilder
from .timewriter import TimeWriter
from .transport import PymodbusTransport, Transport
from .types import TelemetrySnapshot, TimeFields

logger = logging.getLogger(__name__)

SampleConsumer = Callable[[RegisterBlock], None]
SnapshotConsumer = Callable[[TelemetrySnapshot], None]


class PollingEngine:
    """
    Keeps the device link alive and runs the periodic tasks over one RegisterBlock.

    Tasks, in priority order:
    - sample: chunked read of the polled range (a failure means link loss)
    - deliver: build a TelemetrySnapshot and hand it to on_snapshot
    - time_write: write host local time to the device clock registers
    """

    def __init__(
        self,
        config: EngineConfig,
        transport_factory: Callable[[], Transport] | None = None,
        on_sample: SampleConsumer | None = None,
        on_snapshot: SnapshotConsumer | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._on_sample = on_sample
        self._on_snapshot = on_snapshot
        self._sleep = sleep
        if transport_factory is None:
            transport_factory = self._pymodbus_factory

        self.block = RegisterBlock(config.capacity)
        self.session = LinkSession(
            transport_factory,
            self.block,
            max_chunk=config.max_chunk,
            reconnect_delay_s=config.reconnect_delay_s,
            reconnect_on_write_failure=config.reconnect_on_write_failure,
            sleep=sleep,
            name=config.endpoint,
        )
        clock_kwargs: dict[str, Any] = {} if now is None else {"now": now}
        self.snapshots = SnapshotBuilder(config.fields, **clock_kwargs)
        self.time_writer = TimeWriter(
            self.session,
            config.time_base_address,
            config.time_ack_address,
            config.time_ack_value,
            **clock_kwargs,
        )

        self.scheduler = Scheduler(clock=clock, sleep=sleep, tick_s=config.tick_s)
        self.scheduler.add("sample", config.sample_period_ms, self.sample, critical=True)
        if config.deliver_period_ms:
            self.scheduler.add("deliver", config.deliver_period_ms, self.deliver)
        if config.time_write_period_ms:
            self.scheduler.add("time_write", config.time_write_period_ms, self.write_time)

        self.last_snapshot: TelemetrySnapshot | None = None
        self.reconnects = 0

    @property
    def config(self) -> EngineConfig:
        return self._config

    def _pymodbus_factory(self) -> Transport:
        c = self._config
        return PymodbusTransport(
            host=c.host,
            port=c.port,
            unit_id=c.unit_id,
            timeout=c.timeout,
            retries=c.retries,
        )

    def sample(self) -> int:
        n = self.session.read_registers(self._config.read_start, self._config.read_count)
        if self._on_sample is not None:
            try:
                self._on_sample(self.block)
            except Exception as e:
                logger.warning("Sample consumer failed: %s", e, exc_info=True)
        return n

    def deliver(self) -> TelemetrySnapshot:
        snapshot = self.snapshots.build(self.block)
        self.last_snapshot = snapshot
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
        return snapshot

    def write_time(self) -> TimeFields:
        return self.time_writer.write()

    def ensure_connected(self) -> None:
        """Single connect attempt for one-shot use, without the reconnect delay; raises ConnectError on failure."""
        if self.session.connected:
            return
        if not self.session.connect(wait=False):
            raise ConnectError(self._config.host, self._config.port)

    def poll_once(self) -> TelemetrySnapshot:
        """Connect if needed, read the polled range once and return a snapshot."""
        self.ensure_connected()
        self.sample()
        return self.deliver()

    def run(self, should_stop: Callable[[], bool] = lambda: False) -> None:
        """
        Run until should_stop() is true: connect (fixed delay between attempts),
        run the schedule, and start over after link loss.
        """
        c = self._config
        logger.info(
            "Polling %s registers %d..%d every %dms",
            c.endpoint,
            c.read_start,
            c.read_start + c.read_count - 1,
            c.sample_period_ms,
        )
        try:
            while not should_stop():
                if not self.session.connected:
                    if not self.session.connect():
                        continue
                    self.scheduler.reset()
                try:
                    self.scheduler.run(should_stop)
                except LinkLostError as e:
                    self.reconnects += 1
                    logger.warning("Link lost (%s); reconnecting in %.1fs", e, c.reconnect_delay_s)
                    self.session.close()
                    self._sleep(c.reconnect_delay_s)
        finally:
            self.session.close()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "PollingEngine":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

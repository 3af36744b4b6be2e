"""LinkSession: device link lifecycle with fixed-delay reconnect and chunked register I/O."""

import logging
import time
from typing import Any, Callable, Sequence

from .block import RegisterBlock
from .errors import NotConnectedError, TransferError
from .transfer import DEFAULT_MAX_CHUNK, read_chunked, write_chunked
from .transport import Transport
from .types import LinkState

logger = logging.getLogger(__name__)

StateObserver = Callable[[LinkState, LinkState], None]


class LinkSession:
    """
    Owns one transport session and the LinkState that gates register I/O.

    connect() builds a fresh transport from transport_factory each attempt,
    closing the previous one first. A failed read drops the link to
    DISCONNECTED; a failed write only does so when reconnect_on_write_failure
    is set.
    """

    def __init__(
        self,
        transport_factory: Callable[[], Transport],
        block: RegisterBlock,
        *,
        max_chunk: int = DEFAULT_MAX_CHUNK,
        reconnect_delay_s: float = 2.0,
        reconnect_on_write_failure: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        on_state_change: StateObserver | None = None,
        name: str = "device",
    ) -> None:
        self._factory = transport_factory
        self._block = block
        self._max_chunk = max_chunk
        self._reconnect_delay_s = reconnect_delay_s
        self._reconnect_on_write_failure = reconnect_on_write_failure
        self._sleep = sleep
        self._on_state_change = on_state_change
        self._name = name
        self._transport: Transport | None = None
        self._state = LinkState.DISCONNECTED
        self.connects = 0

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == LinkState.CONNECTED

    @property
    def block(self) -> RegisterBlock:
        return self._block

    def _set_state(self, new: LinkState) -> None:
        old = self._state
        if old == new:
            return
        self._state = new
        logger.debug("Link %s: %s -> %s", self._name, old.value, new.value)
        if self._on_state_change is not None:
            self._on_state_change(old, new)

    def _close_transport(self) -> None:
        if self._transport is not None:
            transport, self._transport = self._transport, None
            transport.close()

    def connect(self, wait: bool = True) -> bool:
        """
        Try once to establish the link.

        On failure waits reconnect_delay_s (skipped when wait is False), leaves
        the session DISCONNECTED and returns False; the caller's loop decides
        when to try again.
        """
        self._close_transport()
        self._set_state(LinkState.CONNECTING)
        transport = self._factory()
        try:
            ok = transport.connect()
        except OSError as e:
            logger.warning("Connect to %s failed: %s", self._name, e)
            ok = False
        if ok:
            self._transport = transport
            self.connects += 1
            self._set_state(LinkState.CONNECTED)
            logger.info("Connected to %s", self._name)
            return True

        transport.close()
        self._set_state(LinkState.FAILED)
        if wait:
            logger.warning("Connect to %s failed; retrying in %.1fs", self._name, self._reconnect_delay_s)
            self._sleep(self._reconnect_delay_s)
        else:
            logger.warning("Connect to %s failed", self._name)
        self._set_state(LinkState.DISCONNECTED)
        return False

    def close(self) -> None:
        """Close the transport and mark the link DISCONNECTED."""
        self._close_transport()
        self._set_state(LinkState.DISCONNECTED)

    def drop(self, reason: BaseException | str) -> None:
        """Tear down a CONNECTED link after an I/O failure."""
        if self._state != LinkState.CONNECTED:
            return
        logger.warning("Link to %s lost: %s", self._name, reason)
        self.close()

    def _require_connected(self) -> Transport:
        if self._state != LinkState.CONNECTED or self._transport is None:
            raise NotConnectedError(f"Link to {self._name} is {self._state.value}")
        return self._transport

    def read_registers(self, start: int, count: int) -> int:
        """Chunked read of start..start+count-1 into the block; returns registers received."""
        transport = self._require_connected()
        try:
            return read_chunked(transport, self._block, start, count, self._max_chunk)
        except TransferError as e:
            self.drop(e)
            raise

    def write_registers(self, start: int, values: Sequence[int]) -> int:
        """Chunked-write values at start; the block is updated only once the device accepted them."""
        transport = self._require_connected()
        staged = RegisterBlock(self._block.capacity)
        staged.load(start, values)
        try:
            written = write_chunked(transport, staged, start, len(values), self._max_chunk)
        except TransferError as e:
            self._write_failed(e)
            raise
        self._block.load(start, values)
        return written

    def write_register(self, address: int, value: int) -> None:
        """Single-register write (function 06)."""
        transport = self._require_connected()
        staged = RegisterBlock(self._block.capacity)
        staged[address] = value
        try:
            transport.write_single_register(address, staged[address])
        except TransferError as e:
            self._write_failed(e)
            raise
        self._block[address] = value

    def _write_failed(self, e: TransferError) -> None:
        if self._reconnect_on_write_failure:
            self.drop(e)
        else:
            logger.debug("Write to %s failed at %s, link kept: %s", self._name, e.address, e)

    def __enter__(self) -> "LinkSession":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

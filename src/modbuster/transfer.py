"""Chunked register transfer: split a contiguous range into device-sized operations."""

import logging

from .block import RegisterBlock
from .errors import TransferError
from .transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK = 64


def _chunks(start: int, count: int, max_chunk: int) -> list[tuple[int, int]]:
    """(address, size) pairs covering start..start+count-1, each size <= max_chunk."""
    out: list[tuple[int, int]] = []
    addr = start
    end = start + count
    while addr < end:
        size = min(max_chunk, end - addr)
        out.append((addr, size))
        addr += size
    return out


def _check_args(block: RegisterBlock, start: int, count: int, max_chunk: int) -> None:
    if start < 0:
        raise ValueError(f"start must be >= 0, got {start}")
    if count <= 0:
        raise ValueError(f"count must be > 0, got {count}")
    if max_chunk <= 0:
        raise ValueError(f"max_chunk must be > 0, got {max_chunk}")
    if start + count > block.capacity:
        raise IndexError(
            f"Register range {start}..{start + count - 1} exceeds block capacity {block.capacity}"
        )


def read_chunked(
    transport: Transport,
    block: RegisterBlock,
    start: int,
    count: int,
    max_chunk: int = DEFAULT_MAX_CHUNK,
) -> int:
    """
    Read start..start+count-1 into block, at most max_chunk registers per request.

    The first failing request raises TransferError; chunks already read stay in
    the block. A short response is stored as-is and logged; the next chunk is
    still requested. Returns the number of registers actually received.
    """
    _check_args(block, start, count, max_chunk)
    received = 0
    for addr, size in _chunks(start, count, max_chunk):
        try:
            values = transport.read_holding_registers(addr, size)
        except TransferError:
            logger.debug("Chunk read failed at %d (+%d) after %d registers", addr, size, received)
            raise
        if len(values) > size:
            values = values[:size]
        if len(values) < size:
            logger.warning("Short read at %d: requested %d, got %d", addr, size, len(values))
        block.load(addr, values)
        received += len(values)
    return received


def write_chunked(
    transport: Transport,
    block: RegisterBlock,
    start: int,
    count: int,
    max_chunk: int = DEFAULT_MAX_CHUNK,
) -> int:
    """
    Write block[start:start+count] to the device, at most max_chunk registers per request.

    The first failing request raises TransferError; earlier chunks have
    already been written. Returns the number of registers written.
    """
    _check_args(block, start, count, max_chunk)
    written = 0
    for addr, size in _chunks(start, count, max_chunk):
        transport.write_holding_registers(addr, block.window(addr, size))
        written += size
    return written

"""Tests for chunked register reads and writes."""

import logging
import math

import pytest

from modbuster.block import RegisterBlock
from modbuster.errors import TransferError
from modbuster.transfer import read_chunked, write_chunked


@pytest.mark.parametrize(
    "start,count,max_chunk",
    [(200, 200, 64), (0, 64, 64), (0, 128, 64), (10, 1, 64), (0, 400, 125), (5, 17, 4), (0, 3, 1)],
)
def test_read_issues_ceil_chunks_and_reassembles(factory, device, start: int, count: int, max_chunk: int) -> None:
    device.regs = [(i * 7) & 0xFFFF for i in range(400)]
    block = RegisterBlock()
    transport = factory()

    n = read_chunked(transport, block, start, count, max_chunk)

    reads = factory.ops("read")
    assert n == count
    assert len(reads) == math.ceil(count / max_chunk)
    assert all(size <= max_chunk for _op, _addr, size in reads)
    assert sum(size for _op, _addr, size in reads) == count
    assert block.window(start, count) == device.regs[start:start + count]


def test_read_leaves_outside_range_untouched(factory, device) -> None:
    device.regs = [1] * 400
    block = RegisterBlock()
    read_chunked(factory(), block, 200, 10)
    assert block[199] == 0
    assert block[210] == 0


def test_read_failure_aborts_and_keeps_prefix(factory, device) -> None:
    device.regs = [9] * 400
    device.fail_read_at = 264
    block = RegisterBlock()

    with pytest.raises(TransferError) as exc_info:
        read_chunked(factory(), block, 200, 200, 64)

    assert exc_info.value.address == 264
    assert block.window(200, 64) == [9] * 64
    assert block.window(264, 136) == [0] * 136
    # no further chunk after the failure
    assert [addr for _op, addr, _n in factory.ops("read")] == [200, 264]


def test_short_read_warns_and_continues(factory, device, caplog: pytest.LogCaptureFixture) -> None:
    device.regs = [3] * 400
    device.short_by = 1
    block = RegisterBlock()

    with caplog.at_level(logging.WARNING, logger="modbuster.transfer"):
        n = read_chunked(factory(), block, 0, 128, 64)

    assert n == 126
    assert len(factory.ops("read")) == 2
    assert "Short read" in caplog.text
    assert block[62] == 3
    assert block[63] == 0


def test_write_chunked(factory, device) -> None:
    block = RegisterBlock()
    block.load(100, list(range(1, 151)))

    n = write_chunked(factory(), block, 100, 150, 64)

    writes = factory.ops("write")
    assert n == 150
    assert [(addr, len(vals)) for _op, addr, vals in writes] == [(100, 64), (164, 64), (228, 22)]
    assert device.regs[100:250] == list(range(1, 151))


def test_write_failure_raises(factory, device) -> None:
    device.fail_writes = 1
    block = RegisterBlock()
    with pytest.raises(TransferError):
        write_chunked(factory(), block, 0, 10)


@pytest.mark.parametrize("start,count,max_chunk", [(-1, 1, 64), (0, 0, 64), (0, 1, 0)])
def test_invalid_arguments(factory, start: int, count: int, max_chunk: int) -> None:
    with pytest.raises(ValueError):
        read_chunked(factory(), RegisterBlock(), start, count, max_chunk)


def test_range_beyond_capacity(factory) -> None:
    with pytest.raises(IndexError):
        read_chunked(factory(), RegisterBlock(400), 350, 51)
    assert factory.ops("read") == []

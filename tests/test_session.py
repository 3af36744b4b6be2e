"""Tests for LinkSession state transitions, reconnect delay and I/O gating."""

import pytest

from modbuster.block import RegisterBlock
from modbuster.errors import NotConnectedError, TransferError
from modbuster.session import LinkSession
from modbuster.types import LinkState


@pytest.fixture
def transitions() -> list[tuple[LinkState, LinkState]]:
    return []


@pytest.fixture
def session(factory, clock, transitions) -> LinkSession:
    return LinkSession(
        factory,
        RegisterBlock(),
        max_chunk=64,
        reconnect_delay_s=2.0,
        sleep=clock.sleep,
        on_state_change=lambda old, new: transitions.append((old, new)),
    )


def test_starts_disconnected(session: LinkSession) -> None:
    assert session.state == LinkState.DISCONNECTED
    assert not session.connected


def test_connect_success(session: LinkSession, transitions, clock) -> None:
    assert session.connect() is True
    assert session.state == LinkState.CONNECTED
    assert transitions == [
        (LinkState.DISCONNECTED, LinkState.CONNECTING),
        (LinkState.CONNECTING, LinkState.CONNECTED),
    ]
    assert clock.sleeps == []


def test_connect_failure_waits_fixed_delay(session: LinkSession, device, factory, transitions, clock) -> None:
    device.connect_failures = 3

    results = [session.connect() for _ in range(4)]

    assert results == [False, False, False, True]
    assert clock.sleeps == [2.0, 2.0, 2.0]
    assert (LinkState.CONNECTING, LinkState.FAILED) in transitions
    assert (LinkState.FAILED, LinkState.DISCONNECTED) in transitions
    assert all(t.closed for t in factory.created[:3])
    assert session.state == LinkState.CONNECTED


def test_io_requires_connected(session: LinkSession, factory) -> None:
    with pytest.raises(NotConnectedError):
        session.read_registers(0, 1)
    with pytest.raises(NotConnectedError):
        session.write_registers(0, [1])
    with pytest.raises(NotConnectedError):
        session.write_register(0, 1)
    assert factory.ops("read") == []


def test_read_into_block(session: LinkSession, device) -> None:
    device.regs[200:202] = [100, 0]
    session.connect()
    assert session.read_registers(200, 200) == 200
    assert session.block[200] == 100


def test_read_failure_disconnects_exactly_once(session: LinkSession, device, factory, transitions) -> None:
    session.connect()
    transitions.clear()
    device.fail_reads = 1

    with pytest.raises(TransferError):
        session.read_registers(200, 200)

    assert transitions == [(LinkState.CONNECTED, LinkState.DISCONNECTED)]
    assert factory.created[0].closed
    reads_before = len(factory.ops("read"))

    with pytest.raises(NotConnectedError):
        session.read_registers(200, 200)
    with pytest.raises(NotConnectedError):
        session.write_register(262, 0)
    assert len(factory.ops("read")) == reads_before
    assert factory.ops("write1") == []

    assert session.connect() is True
    assert session.read_registers(200, 200) == 200


def test_reconnect_closes_previous_transport_first(session: LinkSession, factory) -> None:
    session.connect()
    session.connect()
    assert factory.created[0].closed
    assert not factory.created[1].closed
    close_idx = factory.log.index(("close",))
    assert factory.log[close_idx + 1] == ("connect",)


def test_write_failure_keeps_link_by_default(session: LinkSession, device, transitions) -> None:
    session.connect()
    transitions.clear()
    device.fail_writes = 1

    with pytest.raises(TransferError):
        session.write_registers(242, [2024, 0])

    assert session.state == LinkState.CONNECTED
    assert transitions == []


def test_write_failure_can_force_reconnect(factory, clock, device) -> None:
    session = LinkSession(factory, RegisterBlock(), reconnect_on_write_failure=True, sleep=clock.sleep)
    session.connect()
    device.fail_writes = 1

    with pytest.raises(TransferError):
        session.write_register(262, 0)

    assert session.state == LinkState.DISCONNECTED


def test_failed_write_leaves_block_untouched(session: LinkSession, device) -> None:
    session.connect()
    session.block.load(242, [7, 7])
    session.block[262] = 9
    device.fail_writes = 2

    with pytest.raises(TransferError):
        session.write_registers(242, [2024, 0])
    with pytest.raises(TransferError):
        session.write_register(262, 0)

    assert session.block.window(242, 2) == [7, 7]
    assert session.block[262] == 9


def test_connect_without_wait_skips_delay(session: LinkSession, device, clock, transitions) -> None:
    device.connect_failures = 1

    assert session.connect(wait=False) is False

    assert clock.sleeps == []
    assert session.state == LinkState.DISCONNECTED
    assert (LinkState.CONNECTING, LinkState.FAILED) in transitions


def test_write_registers_updates_block_and_device(session: LinkSession, device) -> None:
    session.connect()
    session.write_registers(242, [2024, 0, 1, 0])
    session.write_register(262, 5)
    assert device.regs[242:246] == [2024, 0, 1, 0]
    assert device.regs[262] == 5
    assert session.block.window(242, 4) == [2024, 0, 1, 0]


def test_context_manager_closes(factory, clock) -> None:
    with LinkSession(factory, RegisterBlock(), sleep=clock.sleep) as session:
        session.connect()
    assert session.state == LinkState.DISCONNECTED
    assert factory.created[0].closed

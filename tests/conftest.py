"""Shared in-memory fakes: register device, transport factory and a millisecond clock."""

import pytest

from modbuster.errors import TransferError


class FakeDevice:
    """Holding registers of a simulated device plus failure injection knobs."""

    def __init__(self, size: int = 400) -> None:
        self.regs = [0] * size
        self.connect_failures = 0
        self.fail_reads = 0
        self.fail_writes = 0
        self.fail_read_at: int | None = None
        self.short_by = 0


class FakeTransport:
    def __init__(self, device: FakeDevice, log: list) -> None:
        self.device = device
        self.log = log
        self.closed = False

    def connect(self) -> bool:
        self.log.append(("connect",))
        if self.device.connect_failures > 0:
            self.device.connect_failures -= 1
            return False
        return True

    def close(self) -> None:
        self.log.append(("close",))
        self.closed = True

    def read_holding_registers(self, address: int, count: int) -> list[int]:
        self.log.append(("read", address, count))
        if self.device.fail_reads > 0:
            self.device.fail_reads -= 1
            raise TransferError("read timeout", address=address, count=count)
        if self.device.fail_read_at == address:
            raise TransferError("illegal data address", address=address, count=count)
        end = address + count - self.device.short_by
        return list(self.device.regs[address:end])

    def write_holding_registers(self, address: int, values) -> None:
        self.log.append(("write", address, list(values)))
        if self.device.fail_writes > 0:
            self.device.fail_writes -= 1
            raise TransferError("write timeout", address=address, count=len(values))
        self.device.regs[address:address + len(values)] = list(values)

    def write_single_register(self, address: int, value: int) -> None:
        self.log.append(("write1", address, value))
        if self.device.fail_writes > 0:
            self.device.fail_writes -= 1
            raise TransferError("write timeout", address=address, count=1)
        self.device.regs[address] = value


class FakeTransportFactory:
    """Callable handing out a fresh FakeTransport per connect attempt."""

    def __init__(self, device: FakeDevice) -> None:
        self.device = device
        self.log: list = []
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        t = FakeTransport(self.device, self.log)
        self.created.append(t)
        return t

    def ops(self, kind: str) -> list:
        return [entry for entry in self.log if entry[0] == kind]


class FakeClock:
    """Monotonic clock in whole milliseconds; sleep() advances it."""

    def __init__(self) -> None:
        self.ms = 0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.ms / 1000

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.ms += round(seconds * 1000)


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def factory(device: FakeDevice) -> FakeTransportFactory:
    return FakeTransportFactory(device)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

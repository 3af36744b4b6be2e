"""RegisterBlock: fixed-capacity holding-register buffer where address == index."""

from typing import Iterable, Iterator, overload

DEFAULT_CAPACITY = 400


class RegisterBlock:
    """
    Owned array of unsigned 16-bit cells covering addresses 0..capacity-1.

    Never resized after construction. Out-of-range addresses raise IndexError;
    values outside 0..65535 raise ValueError.
    """

    __slots__ = ("_regs",)

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self._regs: list[int] = [0] * capacity

    @property
    def capacity(self) -> int:
        return len(self._regs)

    def __len__(self) -> int:
        return len(self._regs)

    def __iter__(self) -> Iterator[int]:
        return iter(self._regs)

    def _check_range(self, start: int, count: int) -> None:
        if start < 0 or count < 0 or start + count > len(self._regs):
            raise IndexError(
                f"Register range {start}..{start + count - 1} outside block 0..{len(self._regs) - 1}"
            )

    @overload
    def __getitem__(self, address: int) -> int: ...

    @overload
    def __getitem__(self, address: slice) -> list[int]: ...

    def __getitem__(self, address: int | slice) -> int | list[int]:
        if isinstance(address, slice):
            return self._regs[address]
        self._check_range(address, 1)
        return self._regs[address]

    def __setitem__(self, address: int, value: int) -> None:
        self._check_range(address, 1)
        self._regs[address] = _checked(value)

    def load(self, start: int, values: Iterable[int]) -> int:
        """Store values at start, start+1, ...; returns how many were stored."""
        vals = [_checked(v) for v in values]
        self._check_range(start, len(vals))
        self._regs[start:start + len(vals)] = vals
        return len(vals)

    def window(self, start: int, count: int) -> list[int]:
        """Copy of count registers starting at start."""
        self._check_range(start, count)
        return self._regs[start:start + count]

    def clear(self) -> None:
        for i in range(len(self._regs)):
            self._regs[i] = 0

    def __repr__(self) -> str:
        return f"RegisterBlock(capacity={len(self._regs)})"


def _checked(value: int) -> int:
    v = int(value)
    if not 0 <= v <= 0xFFFF:
        raise ValueError(f"Register value out of range 0..65535: {value}")
    return v

"""
Pure conversions between 16-bit register pairs and 32-bit values.

Pairs are stored low word first: value = regs[addr] | (regs[addr + 1] << 16).
Works on a RegisterBlock or any indexable sequence of register values.
"""

import struct
from typing import Sequence

from .types import ValueKind

_U32_MAX = 0xFFFF_FFFF


class Float32(float):
    """
    A binary32 value read from a register pair.

    Keeps the raw 32-bit pattern in `bits`. Widening to a Python float sets the
    quiet bit of signalling NaNs, so f32_bits() re-encodes from `bits` instead.
    """

    bits: int

    def __new__(cls, bits: int) -> "Float32":
        value = struct.unpack("<f", struct.pack("<I", bits))[0]
        obj = super().__new__(cls, value)
        obj.bits = bits
        return obj


def u32_from_pair(regs: Sequence[int], low_addr: int) -> int:
    """Unsigned 32-bit value from the pair at low_addr (low word first)."""
    return (regs[low_addr] & 0xFFFF) | ((regs[low_addr + 1] & 0xFFFF) << 16)


def f32_from_pair(regs: Sequence[int], low_addr: int) -> Float32:
    """IEEE-754 binary32 with the same bit pattern as u32_from_pair."""
    return Float32(u32_from_pair(regs, low_addr))


def error_flag_from_pair(regs: Sequence[int], low_addr: int) -> int:
    """1 if either word of the pair is nonzero, else 0."""
    return 1 if u32_from_pair(regs, low_addr) > 0 else 0


def pair_from_u32(value: int) -> tuple[int, int]:
    """Inverse of u32_from_pair: (low, high)."""
    if not 0 <= value <= _U32_MAX:
        raise ValueError(f"Unsigned 32-bit value out of range: {value}")
    return value & 0xFFFF, value >> 16


def f32_bits(value: float) -> int:
    """Bit pattern of value packed as binary32; exact for values from f32_from_pair."""
    if isinstance(value, Float32):
        return value.bits
    return struct.unpack("<I", struct.pack("<f", value))[0]


def pair_from_f32(value: float) -> tuple[int, int]:
    return pair_from_u32(f32_bits(value))


def pair_from_small(value: int) -> tuple[int, int]:
    """Pack a value that fits one register as (value, 0)."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Unsigned 16-bit value out of range: {value}")
    return value, 0


def decode(regs: Sequence[int], low_addr: int, kind: ValueKind) -> int | float:
    """Decode the pair at low_addr according to kind."""
    if kind == ValueKind.UINT32:
        return u32_from_pair(regs, low_addr)
    if kind == ValueKind.FLOAT32:
        return f32_from_pair(regs, low_addr)
    if kind == ValueKind.ERROR_FLAG:
        return error_flag_from_pair(regs, low_addr)
    raise ValueError(f"Unknown value kind: {kind!r}")

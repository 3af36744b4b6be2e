"""TimeWriter: push the host's local time to the device clock registers."""

import logging
from datetime import datetime
from typing import Callable

from .codec import pair_from_small
from .session import LinkSession
from .types import TimeFields

logger = logging.getLogger(__name__)

TIME_BASE_ADDRESS = 242
TIME_ACK_ADDRESS = 262
TIME_ACK_VALUE = 0
TIME_REGISTER_COUNT = 12


def time_fields(dt: datetime) -> TimeFields:
    return TimeFields(dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)


def encode_time(fields: TimeFields) -> list[int]:
    """Six (value, 0) pairs: year, month, day, hour, minute, second."""
    regs: list[int] = []
    for value in fields.as_tuple():
        regs.extend(pair_from_small(value))
    return regs


class TimeWriter:
    """
    Writes the twelve time registers at base_address, then ack_value to ack_address.

    Both writes go through the LinkSession; failures propagate to the caller.
    """

    def __init__(
        self,
        session: LinkSession,
        base_address: int = TIME_BASE_ADDRESS,
        ack_address: int = TIME_ACK_ADDRESS,
        ack_value: int = TIME_ACK_VALUE,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        if ack_address in range(base_address, base_address + TIME_REGISTER_COUNT):
            raise ValueError(
                f"ack_address {ack_address} overlaps time registers {base_address}..{base_address + TIME_REGISTER_COUNT - 1}"
            )
        self._session = session
        self._base_address = base_address
        self._ack_address = ack_address
        self._ack_value = ack_value
        self._now = now

    def write(self) -> TimeFields:
        fields = time_fields(self._now())
        self._session.write_registers(self._base_address, encode_time(fields))
        self._session.write_register(self._ack_address, self._ack_value)
        logger.debug("Device clock set to %04d-%02d-%02d %02d:%02d:%02d", *fields.as_tuple())
        return fields

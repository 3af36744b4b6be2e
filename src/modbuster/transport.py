"""Transport capability and its pymodbus TCP implementation."""

import logging
from typing import Protocol, Sequence

from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException as PymodbusException

from .errors import TransferError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the polling core needs from a holding-register link."""

    def connect(self) -> bool: ...

    def close(self) -> None: ...

    def read_holding_registers(self, address: int, count: int) -> list[int]: ...

    def write_holding_registers(self, address: int, values: Sequence[int]) -> None: ...

    def write_single_register(self, address: int, value: int) -> None: ...


class PymodbusTransport:
    """
    Transport over pymodbus ModbusTcpClient.

    Error responses and pymodbus exceptions surface as TransferError; the
    response timeout bounds every request.
    """

    def __init__(
        self,
        host: str,
        port: int = 502,
        unit_id: int = 1,
        timeout: float = 3.0,
        retries: int = 1,
    ) -> None:
        self._host = host
        self._port = port
        self._unit_id = unit_id
        self._client = ModbusTcpClient(
            host=host,
            port=port,
            timeout=timeout,
            retries=retries,
        )

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    def connect(self) -> bool:
        try:
            ok = bool(self._client.connect())
        except PymodbusException as e:
            logger.warning("Connect to %s raised: %s", self.endpoint, e)
            return False
        if not ok:
            logger.debug("Connect to %s refused", self.endpoint)
        return ok

    def close(self) -> None:
        try:
            self._client.close()
        except Exception as e:
            logger.warning("Error closing Modbus client: %s", e)

    def read_holding_registers(self, address: int, count: int) -> list[int]:
        try:
            rr = self._client.read_holding_registers(address, count=count, device_id=self._unit_id)
        except PymodbusException as e:
            raise TransferError(str(e), address=address, count=count, cause=e) from e
        if rr.isError():
            raise TransferError(
                str(rr),
                address=address,
                count=count,
                cause=getattr(rr, "exception", None),
            )
        registers = getattr(rr, "registers", None)
        if registers is None:
            raise TransferError("Empty register response", address=address, count=count)
        return [int(r) for r in registers]

    def write_holding_registers(self, address: int, values: Sequence[int]) -> None:
        try:
            rr = self._client.write_registers(address, list(values), device_id=self._unit_id)
        except PymodbusException as e:
            raise TransferError(str(e), address=address, count=len(values), cause=e) from e
        if rr.isError():
            raise TransferError(
                str(rr),
                address=address,
                count=len(values),
                cause=getattr(rr, "exception", None),
            )

    def write_single_register(self, address: int, value: int) -> None:
        try:
            rr = self._client.write_register(address, int(value), device_id=self._unit_id)
        except PymodbusException as e:
            raise TransferError(str(e), address=address, count=1, cause=e) from e
        if rr.isError():
            raise TransferError(
                str(rr),
                address=address,
                count=1,
                cause=getattr(rr, "exception", None),
            )

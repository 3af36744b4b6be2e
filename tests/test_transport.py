"""Tests for pymodbus dispatch in PymodbusTransport (mocked client)."""

from unittest.mock import MagicMock, patch

import pytest
from pymodbus.exceptions import ModbusException

from modbuster.errors import TransferError
from modbuster.transport import PymodbusTransport


@pytest.fixture
def mock_modbus_client() -> MagicMock:
    client = MagicMock()
    client.connect.return_value = True
    client.read_holding_registers.return_value = MagicMock(isError=lambda: False, registers=[1, 2, 3])
    client.write_registers.return_value = MagicMock(isError=lambda: False)
    client.write_register.return_value = MagicMock(isError=lambda: False)
    return client


@pytest.fixture
def transport(mock_modbus_client: MagicMock) -> PymodbusTransport:
    with patch("modbuster.transport.ModbusTcpClient", return_value=mock_modbus_client) as cls:
        t = PymodbusTransport(host="192.168.0.10", port=1502, unit_id=3, timeout=1.5, retries=0)
    cls.assert_called_once_with(host="192.168.0.10", port=1502, timeout=1.5, retries=0)
    return t


def test_connect_and_close(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    assert transport.connect() is True
    transport.close()
    mock_modbus_client.close.assert_called_once()
    assert transport.endpoint == "192.168.0.10:1502"


def test_connect_refused(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    mock_modbus_client.connect.return_value = False
    assert transport.connect() is False


def test_read_dispatches_with_unit_id(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    assert transport.read_holding_registers(200, 3) == [1, 2, 3]
    mock_modbus_client.read_holding_registers.assert_called_once_with(200, count=3, device_id=3)


def test_read_error_response(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    mock_modbus_client.read_holding_registers.return_value = MagicMock(isError=lambda: True)
    with pytest.raises(TransferError) as exc_info:
        transport.read_holding_registers(264, 64)
    assert exc_info.value.address == 264
    assert exc_info.value.count == 64


def test_read_exception_is_wrapped(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    err = ModbusException("No response received")
    mock_modbus_client.read_holding_registers.side_effect = err
    with pytest.raises(TransferError) as exc_info:
        transport.read_holding_registers(200, 64)
    assert exc_info.value.cause is err
    assert exc_info.value.__cause__ is err


def test_write_registers(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    transport.write_holding_registers(242, (2024, 0, 1, 0))
    mock_modbus_client.write_registers.assert_called_once_with(242, [2024, 0, 1, 0], device_id=3)


def test_write_single_register(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    transport.write_single_register(262, 0)
    mock_modbus_client.write_register.assert_called_once_with(262, 0, device_id=3)


def test_write_error_response(transport: PymodbusTransport, mock_modbus_client: MagicMock) -> None:
    mock_modbus_client.write_register.return_value = MagicMock(isError=lambda: True)
    with pytest.raises(TransferError):
        transport.write_single_register(262, 0)
    mock_modbus_client.write_registers.side_effect = ModbusException("timeout")
    with pytest.raises(TransferError):
        transport.write_holding_registers(242, [1])

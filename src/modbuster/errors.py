"""Exceptions for modbuster: link, transfer, field map and configuration errors."""


class ModbusterError(Exception):
    """Base exception for modbuster."""

    pass


class ConfigError(ModbusterError):
    """Raised when an engine configuration value is out of range or inconsistent."""

    pass


class UnknownFieldError(ModbusterError):
    """Raised when a field name is not present in the current field map."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self._msg = message or f"Unknown field: {name!r}"
        super().__init__(self._msg)


class ConnectError(ModbusterError):
    """Raised when the transport session could not be established."""

    def __init__(self, host: str, port: int, cause: BaseException | None = None) -> None:
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(f"Failed to connect to {host}:{port}")


class TransferError(ModbusterError):
    """Raised when a register read/write fails (wraps pymodbus or connection errors)."""

    def __init__(
        self,
        message: str,
        *,
        address: int | None = None,
        count: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.address = address
        self.count = count
        self.cause = cause
        super().__init__(message)


class NotConnectedError(ModbusterError):
    """Raised when register I/O is attempted while the link is not CONNECTED."""

    pass


class LinkLostError(ModbusterError):
    """Raised by the scheduler when a critical action failed and the link must be rebuilt."""

    def __init__(self, entry: str, cause: BaseException) -> None:
        self.entry = entry
        self.cause = cause
        super().__init__(f"{entry} failed: {cause}")

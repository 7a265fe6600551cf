"""Serial connection to the receiver's CI-V port."""

from __future__ import annotations

import logging

import serial
import serial.tools.list_ports

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 19200
READ_TIMEOUT_S = 0.05


def list_serial_ports() -> list[str]:
    """Device names of the serial ports present on this machine."""
    return [port.device for port in serial.tools.list_ports.comports()]


class SerialConnection:
    """Manages the serial link to the receiver.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(frame_bytes)
        data = conn.read(conn.available())
        conn.close()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._port_name = port
        self._baudrate = baudrate
        self._timeout = timeout
        self._serial: serial.Serial | None = None

    @property
    def port(self) -> str:
        return self._port_name

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open the port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        if self.is_open:
            return
        try:
            self._serial = serial.Serial(
                self._port_name,
                self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._timeout,
                write_timeout=self._timeout,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open CI-V port {self._port_name} at {self._baudrate} baud. "
                f"Last error: {e}"
            ) from e
        logger.info("Opened CI-V port %s at %d baud", self._port_name, self._baudrate)

    def close(self) -> None:
        if self._serial is None:
            return
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port_name, e)
        finally:
            self._serial = None
            logger.info("Closed CI-V port %s", self._port_name)

    def _require_open(self) -> serial.Serial:
        if not self.is_open:
            raise ConnectionError(f"CI-V port {self._port_name} is not open")
        return self._serial

    def available(self) -> int:
        return self._require_open().in_waiting

    def read(self, size: int = 1) -> bytes:
        """Read up to ``size`` bytes; returns ``b""`` when idle."""
        if size <= 0:
            return b""
        return bytes(self._require_open().read(size))

    def write(self, data: bytes) -> int:
        written = self._require_open().write(data)
        return written if written is not None else len(data)

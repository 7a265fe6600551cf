"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol


class ByteTransport(Protocol):
    """A byte link to the receiver, such as a serial port."""

    @property
    def is_open(self) -> bool: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def available(self) -> int:
        """Number of bytes that can be read without blocking."""

    def read(self, size: int = 1) -> bytes:
        """Read up to ``size`` bytes, returning early on timeout."""

    def write(self, data: bytes) -> int: ...


class ReportSource(Protocol):
    """A source of raw HID input reports."""

    @property
    def is_open(self) -> bool: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def poll(self, timeout_ms: int) -> bytes:
        """Return one report, or ``b""`` if none arrived within the timeout."""

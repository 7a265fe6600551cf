"""Shared fakes for transport-level tests."""

from __future__ import annotations

import pytest


class FakeTransport:
    """In-memory CI-V link: bytes queued in ``incoming``, writes recorded."""

    def __init__(self, incoming: bytes = b"") -> None:
        self.incoming = bytearray(incoming)
        self.written: list[bytes] = []
        self.is_open = True

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def available(self) -> int:
        return len(self.incoming)

    def read(self, size: int = 1) -> bytes:
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data)


class FakeRemote:
    """Knob remote that hands out queued reports one per poll."""

    def __init__(self, reports: list[bytes] | None = None) -> None:
        self.reports = list(reports or [])
        self.is_open = True

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def poll(self, timeout_ms: int) -> bytes:
        return self.reports.pop(0) if self.reports else b""


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()

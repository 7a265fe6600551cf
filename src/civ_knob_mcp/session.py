"""Cooperative polling loop tying the receiver link and knob remote together.

Each cycle:

1. drains every byte the CI-V transport has ready and applies complete frames
2. reads at most one HID report and feeds it to the knob controller
3. flushes the commands queued during the cycle

Frames received in a cycle are therefore applied before any command that
cycle produced goes out.
"""

from __future__ import annotations

import logging
import threading

from .config import RemoteConfig
from .protocol.engine import ReceiverEngine
from .remote.controller import KnobController
from .transport.base import ByteTransport, ReportSource

logger = logging.getLogger(__name__)

IDLE_SLEEP_S = 0.005


def _close_device(device: ByteTransport | ReportSource, name: str) -> None:
    try:
        device.close()
    except (OSError, ConnectionError) as e:
        logger.warning("Error closing %s: %s", name, e)


class Session:
    """One receiver, one knob remote, one polling thread."""

    def __init__(
        self,
        config: RemoteConfig | None = None,
        transport: ByteTransport | None = None,
        remote: ReportSource | None = None,
    ) -> None:
        self.config = config or RemoteConfig()
        self.engine = ReceiverEngine(
            transport,
            step_policy=self.config.engine.step_policy,
            min_frequency_frame=self.config.engine.min_frequency_frame,
            receiver_address=self.config.engine.receiver_address,
            controller_address=self.config.engine.controller_address,
        )
        self.controller = KnobController(
            self.engine,
            presets=self.config.presets,
            sensitivity=self.config.knob.sensitivity,
            long_press_ms=self.config.knob.long_press_ms,
            step_table=self.config.knob.steps(),
            layout=self.config.hid.layout(),
        )
        self.remote = remote
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    @property
    def transport(self) -> ByteTransport | None:
        return self.engine.transport

    def attach_transport(self, transport: ByteTransport | None) -> None:
        self.engine.attach_transport(transport)

    def attach_remote(self, remote: ReportSource | None) -> None:
        self.remote = remote
        if remote is None:
            logger.warning("No knob remote, HID input disabled")

    # ─── POLLING ───────────────────────────────────────────────────────

    def poll_once(self) -> bool:
        """Run one polling cycle.

        Returns:
            True if any bytes or a report were processed.
        """
        busy = self._drain_transport()
        busy = self._read_remote() or busy
        self._flush()
        return busy

    def _drain_transport(self) -> bool:
        transport = self.engine.transport
        if transport is None or not transport.is_open:
            return False
        try:
            count = transport.available()
            data = transport.read(count) if count else b""
        except (OSError, ConnectionError) as e:
            self._lose_transport(e)
            return False
        if not data:
            return False
        self.engine.feed(data)
        return True

    def _read_remote(self) -> bool:
        remote = self.remote
        if remote is None or not remote.is_open:
            return False
        try:
            report = remote.poll(self.config.hid.read_timeout_ms)
        except (OSError, ConnectionError) as e:
            logger.warning("Knob remote read failed, disabling HID input: %s", e)
            _close_device(remote, "knob remote")
            self.remote = None
            return False
        if not report:
            return False
        self.controller.handle_report(report)
        return True

    def _flush(self) -> None:
        try:
            self.engine.flush()
        except (OSError, ConnectionError) as e:
            self._lose_transport(e)

    def _lose_transport(self, error: Exception) -> None:
        logger.warning("CI-V transport failed, continuing without it: %s", error)
        transport = self.engine.transport
        if transport is not None:
            _close_device(transport, "CI-V transport")
        self.engine.attach_transport(None)

    # ─── LIFECYCLE ─────────────────────────────────────────────────────

    def start(self) -> None:
        """Query the receiver and start polling on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self.engine.query_all()
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, name="civ-knob-poll", daemon=True
        )
        self._thread.start()

    def run(self) -> None:
        """Poll until :meth:`stop` is called."""
        logger.info("Polling started")
        while not self._stop.is_set():
            if not self.poll_once():
                self._stop.wait(IDLE_SLEEP_S)
        logger.info("Polling stopped")

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def close(self) -> None:
        """Stop polling and close both devices."""
        self.stop()
        if self.engine.transport is not None:
            _close_device(self.engine.transport, "CI-V transport")
        if self.remote is not None:
            _close_device(self.remote, "knob remote")
        self.engine.attach_transport(None)
        self.remote = None

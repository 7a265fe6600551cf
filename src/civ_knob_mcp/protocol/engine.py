"""Receiver state engine.

Consumes frames from the receiver, keeps :class:`ReceiverState` current,
infers the tuning step from broadcast frequency changes, and queues
outgoing command frames.

Outgoing frames are queued, not written, so a polling loop can apply
every received frame of a cycle before anything new goes out::

    engine = ReceiverEngine(transport)
    engine.feed(transport.read(transport.available()))
    engine.set_frequency(145_500_000)
    engine.flush()
"""

from __future__ import annotations

import logging
import threading
from enum import Enum

from ..models.receiver import ReceiverState
from ..models.tables import STEP_TABLE, StepTable, Unknown, label_of
from ..transport.base import ByteTransport
from .commands import (
    CONTROLLER_ADDRESS,
    RECEIVER_ADDRESS,
    build_read_frequency,
    build_read_mode,
    build_read_step,
    build_set_frequency,
    build_set_mode,
)
from .framing import Frame, FrameAssembler, parse_frame
from .parser import (
    FREQUENCY_FRAME_MINIMUMS,
    MIN_FREQUENCY_FRAME,
    FrequencyReport,
    ModeReport,
    StepReport,
    parse_response,
)

logger = logging.getLogger(__name__)


class StepPolicy(str, Enum):
    """How a broadcast frequency change is matched against the step table."""

    EXACT = "exact"
    TOLERANCE = "tolerance"


def detect_step(
    diff: int,
    policy: StepPolicy = StepPolicy.TOLERANCE,
    table: StepTable = STEP_TABLE,
) -> int | None:
    """Infer a step size from a frequency change.

    With ``EXACT`` the change must equal a table entry. With ``TOLERANCE``
    the nearest entry is taken if it is within 10% (``error * 10 <= step``),
    which absorbs several knob ticks coalesced into one broadcast.

    Returns:
        The step in Hz, or ``None`` if nothing matches.
    """
    if diff <= 0:
        return None
    if policy is StepPolicy.EXACT:
        return diff if diff in table else None

    nearest = min(table, key=lambda step: abs(step - diff))
    if abs(nearest - diff) * 10 <= nearest:
        return nearest
    return None


class ReceiverEngine:
    """Tracks receiver state from CI-V traffic and issues commands.

    All state changes happen under :attr:`lock`, which the knob controller
    shares, so a host that polls from a background thread stays consistent.
    """

    def __init__(
        self,
        transport: ByteTransport | None = None,
        step_policy: StepPolicy = StepPolicy.TOLERANCE,
        min_frequency_frame: int = MIN_FREQUENCY_FRAME,
        receiver_address: int = RECEIVER_ADDRESS,
        controller_address: int = CONTROLLER_ADDRESS,
    ) -> None:
        if min_frequency_frame not in FREQUENCY_FRAME_MINIMUMS:
            raise ValueError(
                f"Minimum frequency frame must be one of "
                f"{FREQUENCY_FRAME_MINIMUMS}, got {min_frequency_frame}"
            )
        self.state = ReceiverState()
        self.lock = threading.RLock()
        self.step_policy = StepPolicy(step_policy)
        self.min_frequency_frame = min_frequency_frame
        self._addresses = {"dest": receiver_address, "src": controller_address}
        self._transport = transport
        self._assembler = FrameAssembler()
        self._outbox: list[bytes] = []
        self._last_broadcast: int | None = None

    # ─── TRANSPORT ─────────────────────────────────────────────────────

    @property
    def transport(self) -> ByteTransport | None:
        return self._transport

    @property
    def can_transmit(self) -> bool:
        return self._transport is not None and self._transport.is_open

    def attach_transport(self, transport: ByteTransport | None) -> None:
        """Replace the transport; ``None`` leaves the engine receive-only."""
        with self.lock:
            self._transport = transport
            self._assembler.clear()
        if transport is None:
            logger.warning("No CI-V transport, outgoing commands disabled")

    @property
    def pending(self) -> list[bytes]:
        """Frames queued for the next :meth:`flush`."""
        with self.lock:
            return list(self._outbox)

    def flush(self) -> int:
        """Write queued frames to the transport.

        Without a usable transport the queue is dropped and logged.

        Returns:
            Number of frames written.
        """
        with self.lock:
            frames, self._outbox = self._outbox, []
            if not frames:
                return 0
            if not self.can_transmit:
                logger.warning(
                    "Transport unavailable, dropped %d outgoing frame(s)", len(frames)
                )
                return 0
            for data in frames:
                logger.debug("TX %s", data.hex(" "))
                self._transport.write(data)
            return len(frames)

    # ─── RECEIVE PATH ──────────────────────────────────────────────────

    def feed(self, data: bytes) -> list[FrequencyReport | ModeReport | StepReport]:
        """Push received bytes through the assembler and apply complete frames.

        Returns:
            The reports applied, in arrival order.
        """
        applied = []
        with self.lock:
            for candidate in self._assembler.feed(data):
                report = self.handle_frame(candidate)
                if report is not None:
                    applied.append(report)
        return applied

    def handle_frame(
        self, data: bytes
    ) -> FrequencyReport | ModeReport | StepReport | None:
        """Parse one candidate frame and apply it to the state."""
        logger.debug("RX %s", data.hex(" "))
        frame = parse_frame(data)
        if frame is None:
            logger.warning("Malformed frame ignored: %s", data.hex(" "))
            return None
        # the CI-V bus echoes every frame we send
        if frame.src == self._addresses["src"]:
            logger.debug("Own frame echoed: %r", frame)
            return None

        response = parse_response(frame, self.min_frequency_frame)
        if response is None:
            logger.warning("Short 0x%02X frame ignored: %s", frame.command, data.hex(" "))
            return None
        if isinstance(response, Frame):
            logger.debug("Unhandled frame %r", response)
            return None

        with self.lock:
            if isinstance(response, FrequencyReport):
                self._apply_frequency(response)
            elif isinstance(response, ModeReport):
                self._apply_mode(response)
            elif isinstance(response, StepReport):
                self._apply_step(response)
        return response

    def _apply_frequency(self, report: FrequencyReport) -> None:
        hz = report.hz
        if hz is None:
            logger.warning(
                "Bad BCD digits %r, keeping %d Hz", report.digits, self.state.frequency
            )
            return

        previous = self._last_broadcast
        if previous is not None and previous > 0:
            diff = abs(hz - previous)
            step = detect_step(diff, self.step_policy)
            if step is not None and step != self.state.step:
                logger.info("Inferred step %s from %d Hz change", label_of(step), diff)
                self.state.step = step

        self.state.frequency = hz
        self.state.frequency_digits = report.digits
        self._last_broadcast = hz

    def _apply_mode(self, report: ModeReport) -> None:
        if isinstance(report.mode, Unknown):
            logger.info("Receiver reported unknown mode code 0x%02X", report.mode.code)
        self.state.mode = report.mode
        if report.filter is not None:
            self.state.filter = report.filter

    def _apply_step(self, report: StepReport) -> None:
        self.state.step = report.step

    # ─── OUTGOING COMMANDS ─────────────────────────────────────────────

    def _queue(self, data: bytes) -> bytes:
        with self.lock:
            self._outbox.append(data)
        return data

    def set_frequency(self, hz: int) -> bytes:
        """Queue a set-frequency frame and update the local frequency.

        The local value is provisional; the next frequency frame from the
        receiver overwrites it.
        """
        data = build_set_frequency(hz, **self._addresses)
        with self.lock:
            self.state.frequency = hz
            self.state.frequency_digits = str(hz)
            return self._queue(data)

    def set_mode(self, mode_code: int) -> bytes:
        return self._queue(build_set_mode(mode_code, **self._addresses))

    def set_step_local(self, step: int) -> None:
        """Select a step without telling the receiver."""
        with self.lock:
            self.state.step = step

    def query_frequency(self) -> bytes:
        return self._queue(build_read_frequency(**self._addresses))

    def query_mode(self) -> bytes:
        return self._queue(build_read_mode(**self._addresses))

    def query_step(self) -> bytes:
        return self._queue(build_read_step(**self._addresses))

    def query_all(self) -> None:
        self.query_frequency()
        self.query_mode()
        self.query_step()

    def snapshot(self) -> ReceiverState:
        """A copy of the current state, safe to read outside the lock."""
        with self.lock:
            return ReceiverState(**vars(self.state))

"""Knob state machine: turns remote reports into receiver commands.

The knob works in one of three modes:

- ``FREQ``: each action tunes by the current step and sends the frequency
- ``STEP``: each action selects the next/previous step (local only)
- ``RXMODE``: each action cycles the receive mode and sends it

A short press on the mode button toggles FREQ -> STEP, a long press
FREQ -> RXMODE; either press returns to FREQ from any other mode. The two
preset buttons recall a stored frequency chosen by button and press length.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from enum import Enum

from ..models.tables import (
    DEFAULT_STEP_HZ,
    RX_MODE_CYCLE,
    STEP_TABLE,
    StepTable,
    label_of,
)
from ..protocol.engine import ReceiverEngine
from ..utils.bcd import MAX_FREQUENCY_HZ
from ..utils.frequency import parse_frequency
from .report import Button, KnobDirection, ReportLayout, decode_report

logger = logging.getLogger(__name__)

DEFAULT_SENSITIVITY = 3
DEFAULT_LONG_PRESS_MS = 500


class KnobMode(Enum):
    FREQ = "freq"
    STEP = "step"
    RXMODE = "rxmode"


class PressLength(str, Enum):
    SHORT = "short"
    LONG = "long"


def preset_key(button: Button, length: PressLength) -> str:
    """Preset lookup key, e.g. ``"primary-long"``."""
    return f"{button.value}-{length.value}"


PRESET_KEYS = tuple(
    preset_key(button, length)
    for button in (Button.PRIMARY, Button.SECONDARY)
    for length in PressLength
)


def _monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class KnobController:
    """Drives a :class:`ReceiverEngine` from knob remote input.

    Args:
        engine: Engine that receives the resulting commands.
        presets: Preset key to frequency string, see :data:`PRESET_KEYS`.
        sensitivity: Only every Nth knob tick in one direction acts.
        long_press_ms: Presses held at least this long are long presses.
        step_table: Steps the knob walks through in ``STEP`` mode.
        layout: HID report layout.
        clock: Millisecond clock used when a report carries no timestamp.
    """

    def __init__(
        self,
        engine: ReceiverEngine,
        presets: Mapping[str, str] | None = None,
        sensitivity: int = DEFAULT_SENSITIVITY,
        long_press_ms: int = DEFAULT_LONG_PRESS_MS,
        step_table: StepTable = STEP_TABLE,
        layout: ReportLayout | None = None,
        clock=_monotonic_ms,
    ) -> None:
        if sensitivity < 1:
            raise ValueError(f"Sensitivity must be at least 1, got {sensitivity}")
        self.engine = engine
        self.presets: Mapping[str, str] = dict(presets or {})
        self.sensitivity = sensitivity
        self.long_press_ms = long_press_ms
        self.step_table = step_table
        self.layout = layout or ReportLayout()
        self._clock = clock

        self._mode = KnobMode.FREQ
        self._tick_count = 0
        self._tick_direction: KnobDirection | None = None
        self._rx_index: int | None = None
        self._held: frozenset[Button] = frozenset()
        self._press_started: dict[Button, int] = {}

    @property
    def mode(self) -> KnobMode:
        return self._mode

    @mode.setter
    def mode(self, mode: KnobMode) -> None:
        with self.engine.lock:
            self._enter(KnobMode(mode))

    # ─── REPORTS ───────────────────────────────────────────────────────

    def handle_report(self, data: bytes, now: int | None = None) -> None:
        """Apply one raw HID report: button edges first, then the knob."""
        report = decode_report(data, self.layout)
        if report is None:
            logger.debug("Short HID report ignored: %s", bytes(data).hex(" "))
            return

        now = self._clock() if now is None else now
        with self.engine.lock:
            for button in sorted(report.pressed - self._held, key=lambda b: b.value):
                self.press(button, now)
            for button in sorted(self._held - report.pressed, key=lambda b: b.value):
                self.release(button, now)
            self._held = report.pressed

            if report.direction is not None:
                self.tick(report.direction)

    # ─── BUTTONS ───────────────────────────────────────────────────────

    def press(self, button: Button, now: int) -> None:
        """Record the start of a press unless one is already running."""
        self._press_started.setdefault(button, now)

    def release(self, button: Button, now: int) -> PressLength | None:
        """Finish a press, classify it and act on it.

        Returns:
            The press length, or ``None`` for a release with no recorded press.
        """
        started = self._press_started.pop(button, None)
        if started is None:
            return None

        length = self.classify(now - started)
        logger.debug("%s %s press (%d ms)", button.value, length.value, now - started)
        with self.engine.lock:
            if button is Button.MODE:
                self.mode_button(length)
            else:
                self.recall_preset(button, length)
        return length

    def classify(self, duration_ms: int) -> PressLength:
        if duration_ms >= self.long_press_ms:
            return PressLength.LONG
        return PressLength.SHORT

    def mode_button(self, length: PressLength) -> KnobMode:
        """Apply a mode-button press and return the new knob mode."""
        if self._mode is not KnobMode.FREQ:
            self._enter(KnobMode.FREQ)
        elif length is PressLength.SHORT:
            self._enter(KnobMode.STEP)
        else:
            self._enter(KnobMode.RXMODE)
        return self._mode

    def recall_preset(self, button: Button, length: PressLength) -> int | None:
        """Tune to the preset stored for ``button`` and ``length``.

        Returns:
            The frequency sent, or ``None`` if the preset is missing or bad.
        """
        key = preset_key(button, length)
        text = self.presets.get(key)
        if text is None:
            logger.warning("No preset configured for %s", key)
            return None

        hz = parse_frequency(text)
        if hz is None:
            logger.warning("Preset %s not recalled", key)
            return None

        logger.info("Recalling preset %s: %d Hz", key, hz)
        self.engine.set_frequency(hz)
        return hz

    def _enter(self, mode: KnobMode) -> None:
        if mode is self._mode:
            return
        self._mode = mode
        self._tick_count = 0
        self._tick_direction = None
        if mode is KnobMode.RXMODE:
            current = self.engine.state.mode
            self._rx_index = (
                RX_MODE_CYCLE.index(current) if current in RX_MODE_CYCLE else None
            )
        logger.info("Knob mode %s", mode.name)

    # ─── KNOB ──────────────────────────────────────────────────────────

    def tick(self, direction: KnobDirection) -> bool:
        """Count one knob tick; every Nth tick in a row performs an action.

        A change of direction restarts the count.

        Returns:
            True if this tick performed an action.
        """
        with self.engine.lock:
            if direction is not self._tick_direction:
                self._tick_direction = direction
                self._tick_count = 0
            self._tick_count += 1
            if self._tick_count < self.sensitivity:
                return False
            self._tick_count = 0

            delta = direction.value
            if self._mode is KnobMode.FREQ:
                self._tune(delta)
            elif self._mode is KnobMode.STEP:
                self._change_step(delta)
            else:
                self._change_rx_mode(delta)
            return True

    @property
    def current_step(self) -> int:
        """Step used for tuning: the receiver's step, or the default."""
        return self.engine.state.step_hz or DEFAULT_STEP_HZ

    def step_index(self) -> int:
        default = self.step_table.index_of(DEFAULT_STEP_HZ)
        return self.step_table.index_of(self.current_step, default)

    def _tune(self, delta: int) -> None:
        state = self.engine.state
        hz = state.frequency + delta * self.current_step
        hz = min(max(hz, 0), MAX_FREQUENCY_HZ)
        self.engine.set_frequency(hz)

    def _change_step(self, delta: int) -> None:
        index = self.step_table.wrap(self.step_index() + delta)
        step = self.step_table[index]
        self.engine.set_step_local(step)
        logger.info("Step %s", label_of(step))

    def _change_rx_mode(self, delta: int) -> None:
        if self._rx_index is None:
            index = 0 if delta > 0 else len(RX_MODE_CYCLE) - 1
        else:
            index = (self._rx_index + delta) % len(RX_MODE_CYCLE)
        self._rx_index = index
        mode = RX_MODE_CYCLE[index]
        logger.info("Receive mode %s", mode.label)
        self.engine.set_mode(mode.value)

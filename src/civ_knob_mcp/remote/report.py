"""Decoding of raw knob-remote HID reports.

Report layout (offsets into the raw report)::

    byte 3  knob direction code (0x01 clockwise, 0xFF counter-clockwise)
    byte 5  button bitmask, active-low (bit clear = pressed)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class KnobDirection(Enum):
    CLOCKWISE = 1
    COUNTER_CLOCKWISE = -1


class Button(str, Enum):
    """Physical buttons. Values are used to build preset keys."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    MODE = "mode"


DEFAULT_BUTTON_MASKS: dict[Button, int] = {
    Button.PRIMARY: 0x01,
    Button.SECONDARY: 0x02,
    Button.MODE: 0x04,
}


@dataclass(frozen=True)
class ReportLayout:
    """Where the knob and buttons live in a report."""

    direction_offset: int = 3
    buttons_offset: int = 5
    clockwise_code: int = 0x01
    counter_clockwise_code: int = 0xFF
    button_masks: dict[Button, int] = field(
        default_factory=lambda: dict(DEFAULT_BUTTON_MASKS)
    )

    @property
    def min_length(self) -> int:
        return max(self.direction_offset, self.buttons_offset) + 1


@dataclass(frozen=True)
class RemoteReport:
    """One decoded report: an optional knob tick and the buttons held down."""

    direction: KnobDirection | None
    pressed: frozenset[Button]


def decode_report(data: bytes, layout: ReportLayout | None = None) -> RemoteReport | None:
    """Decode a raw HID report.

    Returns:
        A ``RemoteReport``, or ``None`` if the report is too short.
    """
    layout = layout or ReportLayout()
    if len(data) < layout.min_length:
        return None

    code = data[layout.direction_offset]
    if code == layout.clockwise_code:
        direction = KnobDirection.CLOCKWISE
    elif code == layout.counter_clockwise_code:
        direction = KnobDirection.COUNTER_CLOCKWISE
    else:
        direction = None

    bits = data[layout.buttons_offset]
    pressed = frozenset(
        button for button, mask in layout.button_masks.items() if not bits & mask
    )
    return RemoteReport(direction=direction, pressed=pressed)

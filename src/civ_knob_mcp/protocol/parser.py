"""Response parsing for receiver frames."""

from __future__ import annotations

from dataclasses import dataclass

from ..models.tables import Filter, Mode, Unknown, decode_filter, decode_mode, decode_step
from ..utils.bcd import BCD_FREQUENCY_WIDTH, bcd_decode
from .commands import FREQUENCY_COMMANDS, MODE_COMMANDS, Command
from .framing import HEADER_SIZE, Frame

# header + command + BCD field + end marker
MIN_FREQUENCY_FRAME = HEADER_SIZE + 1 + BCD_FREQUENCY_WIDTH + 1
# receivers in the field use either this minimum or one byte less
FREQUENCY_FRAME_MINIMUMS = (MIN_FREQUENCY_FRAME - 1, MIN_FREQUENCY_FRAME)
MIN_MODE_FRAME = 7
MIN_STEP_FRAME = 7


@dataclass
class FrequencyReport:
    """Parsed frequency frame (0x00 broadcast or 0x03 reply)."""

    digits: str
    broadcast: bool

    @property
    def hz(self) -> int | None:
        """The frequency in Hz, or ``None`` if the digits are not decimal."""
        if self.digits.isdigit():
            return int(self.digits)
        return None


@dataclass
class ModeReport:
    """Parsed mode frame (0x01 broadcast or 0x04 reply).

    ``filter`` is ``None`` when the frame carried no filter byte.
    """

    mode: Mode | Unknown
    filter: Filter | Unknown | None = None


@dataclass
class StepReport:
    """Parsed tuning step frame (0x05)."""

    step: int | Unknown
    code: int


def parse_frequency(
    frame: Frame, min_length: int = MIN_FREQUENCY_FRAME
) -> FrequencyReport | None:
    """Parse a frequency frame.

    Every byte between the command and the end marker belongs to the BCD
    field, so longer fields from other receivers still decode.
    """
    if frame.command not in FREQUENCY_COMMANDS:
        return None
    if len(frame.raw) < min_length or not frame.payload:
        return None
    return FrequencyReport(
        digits=bcd_decode(frame.payload),
        broadcast=frame.command == Command.FREQUENCY_BROADCAST,
    )


def parse_mode(frame: Frame) -> ModeReport | None:
    """Parse a mode frame: mode byte, then an optional filter byte."""
    if frame.command not in MODE_COMMANDS:
        return None
    if len(frame.raw) < MIN_MODE_FRAME or not frame.payload:
        return None

    mode = decode_mode(frame.payload[0])
    filt = decode_filter(frame.payload[1]) if len(frame.payload) > 1 else None
    return ModeReport(mode=mode, filter=filt)


def parse_step(frame: Frame) -> StepReport | None:
    """Parse a step frame. The code is the byte just before the end marker."""
    if frame.command != Command.READ_STEP:
        return None
    if len(frame.raw) < MIN_STEP_FRAME or not frame.payload:
        return None
    code = frame.payload[-1]
    return StepReport(step=decode_step(code), code=code)


Report = FrequencyReport | ModeReport | StepReport


def parse_response(
    frame: Frame, min_frequency_length: int = MIN_FREQUENCY_FRAME
) -> Report | Frame | None:
    """Dispatch a frame to the parser for its command.

    Returns:
        The parsed report; the ``Frame`` itself for commands with no parser
        (opaque frames); or ``None`` when a known command is malformed.
    """
    if frame.command in FREQUENCY_COMMANDS:
        return parse_frequency(frame, min_frequency_length)
    if frame.command in MODE_COMMANDS:
        return parse_mode(frame)
    if frame.command == Command.READ_STEP:
        return parse_step(frame)
    return frame

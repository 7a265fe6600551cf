"""CI-V command constants and frame builders.

Each command is a single byte. The receiver answers queries with the same
command byte and also broadcasts unsolicited frequency/mode changes.
"""

from __future__ import annotations

from enum import IntEnum

from ..utils.bcd import bcd_encode
from .framing import build_frame

RECEIVER_ADDRESS = 0x96
CONTROLLER_ADDRESS = 0xE0


class Command(IntEnum):
    """CI-V command identifiers."""

    FREQUENCY_BROADCAST = 0x00
    MODE_BROADCAST = 0x01
    READ_FREQUENCY = 0x03
    READ_MODE = 0x04
    READ_STEP = 0x05
    SET_MODE = 0x06

    # Outgoing set-frequency shares its byte with the broadcast
    SET_FREQUENCY = 0x00


FREQUENCY_COMMANDS = frozenset({Command.FREQUENCY_BROADCAST, Command.READ_FREQUENCY})
MODE_COMMANDS = frozenset({Command.MODE_BROADCAST, Command.READ_MODE})


def build_command(
    command: int,
    payload: bytes = b"",
    dest: int = RECEIVER_ADDRESS,
    src: int = CONTROLLER_ADDRESS,
) -> bytes:
    """Build a frame addressed from the controller to the receiver."""
    return build_frame(dest, src, int(command), payload)


def build_query(command: int, **addresses: int) -> bytes:
    """Build a payload-less query frame for ``command``."""
    return build_command(command, **addresses)


def build_set_frequency(hz: int, **addresses: int) -> bytes:
    """Build a set-frequency frame.

    Args:
        hz: Frequency in Hz, 0 to 9,999,999,999.
    """
    return build_command(Command.SET_FREQUENCY, bcd_encode(hz), **addresses)


def build_set_mode(mode_code: int, **addresses: int) -> bytes:
    """Build a set-mode frame carrying a single mode byte."""
    if not 0 <= mode_code <= 0xFF:
        raise ValueError(f"Mode code must be 0-255, got {mode_code}")
    return build_command(Command.SET_MODE, bytes([mode_code]), **addresses)


def build_read_frequency(**addresses: int) -> bytes:
    return build_query(Command.READ_FREQUENCY, **addresses)


def build_read_mode(**addresses: int) -> bytes:
    return build_query(Command.READ_MODE, **addresses)


def build_read_step(**addresses: int) -> bytes:
    return build_query(Command.READ_STEP, **addresses)

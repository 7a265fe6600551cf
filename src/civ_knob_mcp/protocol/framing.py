"""CI-V frame builder, parser and byte-stream assembler.

Frame layout::

    +----------+------+------+---------+------------------+-----+
    | Preamble | Dest | Src  | Command |     Payload      | End |
    | FE FE    | 1 B  | 1 B  | 1 byte  |  variable length | FD  |
    +----------+------+------+---------+------------------+-----+

- Dest/Src: CI-V addresses, receiver 0x96 and controller 0xE0
- Payload: command-dependent, may be empty
- There is no length field or checksum; the end marker delimits frames
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PREAMBLE = b"\xFE\xFE"
END_MARKER = 0xFD
HEADER_SIZE = 4  # preamble(2) + dest(1) + src(1)
COMMAND_OFFSET = HEADER_SIZE
MIN_FRAME_SIZE = 5


@dataclass
class Frame:
    """A CI-V frame split into its fields.

    ``raw`` holds the candidate bytes exactly as received, end marker
    included when present.
    """

    dest: int
    src: int
    command: int
    payload: bytes
    raw: bytes = b""

    def __repr__(self) -> str:
        return (
            f"Frame(dest=0x{self.dest:02X}, src=0x{self.src:02X}, "
            f"command=0x{self.command:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def build_frame(dest: int, src: int, command: int, payload: bytes = b"") -> bytes:
    """Build a complete CI-V frame.

    Args:
        dest: Destination address.
        src: Source address.
        command: Single-byte command.
        payload: Command-specific payload bytes.

    Returns:
        ``FE FE dest src command payload FD`` as ``bytes``.
    """
    for name, value in (("dest", dest), ("src", src), ("command", command)):
        if not 0 <= value <= 0xFF:
            raise ValueError(f"{name} must be 0-255, got {value}")
    return PREAMBLE + bytes([dest, src, command]) + payload + bytes([END_MARKER])


def parse_frame(data: bytes) -> Frame | None:
    """Split a candidate frame into fields.

    Fields are read at fixed offsets. The preamble bytes are not checked,
    so a garbage prefix before an end marker parses as a (wrong) frame.

    Returns:
        A ``Frame``, or ``None`` if the data is shorter than
        ``MIN_FRAME_SIZE`` or does not end with the end marker.
    """
    if len(data) < MIN_FRAME_SIZE:
        return None
    if data[-1] != END_MARKER:
        return None

    return Frame(
        dest=data[2],
        src=data[3],
        command=data[COMMAND_OFFSET],
        payload=bytes(data[COMMAND_OFFSET + 1 : -1]),
        raw=bytes(data),
    )


class FrameAssembler:
    """Accumulates serial bytes and cuts candidate frames at end markers.

    Usage::

        assembler = FrameAssembler()
        for candidate in assembler.feed(chunk):
            frame = parse_frame(candidate)
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received since the last end marker."""
        return bytes(self._buffer)

    def feed(self, data: bytes) -> list[bytes]:
        """Append ``data`` and return every candidate closed by it.

        Each candidate includes its end marker. The buffer is cleared after
        every end marker, whatever the candidate turns out to contain.
        """
        candidates: list[bytes] = []
        for byte in data:
            self._buffer.append(byte)
            if byte == END_MARKER:
                candidates.append(bytes(self._buffer))
                self._buffer.clear()
        return candidates

    def clear(self) -> None:
        if self._buffer:
            logger.debug("Discarding partial frame: %s", self._buffer.hex(" "))
        self._buffer.clear()

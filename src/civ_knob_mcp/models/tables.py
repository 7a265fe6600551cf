"""Lookup tables between CI-V byte codes and receiver settings.

Codes the tables do not know are never dropped: they decode to
:class:`Unknown`, which keeps the raw byte for display and debugging.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


@dataclass(frozen=True)
class Unknown:
    """A protocol code with no table entry."""

    code: int

    @property
    def label(self) -> str:
        return f"Unknown(0x{self.code:02X})"

    def __str__(self) -> str:
        return self.label


class Mode(IntEnum):
    """Receive modes with their CI-V mode codes."""

    LSB = 0x00
    USB = 0x01
    AM = 0x02
    CW = 0x03
    RTTY = 0x04
    FM = 0x05
    WFM = 0x06
    AM_N = 0x07
    FM_N = 0x08
    DV = 0x17
    DSTAR_DATA = 0x18
    P25 = 0x19
    NXDN_N = 0x1A
    SAM_D = 0x1B
    DPMR = 0x1C
    NXDN_VN = 0x1D

    @property
    def label(self) -> str:
        return MODE_LABELS[self]


MODE_LABELS: dict[Mode, str] = {
    Mode.LSB: "LSB",
    Mode.USB: "USB",
    Mode.AM: "AM",
    Mode.CW: "CW",
    Mode.RTTY: "RTTY",
    Mode.FM: "FM",
    Mode.WFM: "WFM",
    Mode.AM_N: "AM-N",
    Mode.FM_N: "FM-N",
    Mode.DV: "DV",
    Mode.DSTAR_DATA: "D-STAR Data",
    Mode.P25: "P25",
    Mode.NXDN_N: "NXDN-N",
    Mode.SAM_D: "S-AM(d)",
    Mode.DPMR: "dPMR",
    Mode.NXDN_VN: "NXDN-VN",
}

# Modes reachable from the knob, in turning order
RX_MODE_CYCLE: tuple[Mode, ...] = (
    Mode.FM,
    Mode.AM,
    Mode.USB,
    Mode.LSB,
    Mode.WFM,
    Mode.CW,
    Mode.DV,
)


class Filter(Enum):
    """IF filter selection reported alongside the mode."""

    WIDE = 0
    NARROW = 1
    MID = 2
    AUTO = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class StepTable(tuple):
    """An ordered, immutable table of tuning steps in Hz."""

    def index_of(self, hz: int, default: int = 0) -> int:
        try:
            return self.index(hz)
        except ValueError:
            return default

    def wrap(self, index: int) -> int:
        return index % len(self)


STEP_TABLE = StepTable((
    1, 10, 100, 1000, 5000, 6250, 8330, 9000, 10000,
    12500, 20000, 25000, 30000, 50000, 100000, 200000, 500000,
))

# Airband channel spacing
AIR_STEP_TABLE = StepTable((8330, 25000, 50000, 100000))

STEP_TABLES = {"standard": STEP_TABLE, "air": AIR_STEP_TABLE}

DEFAULT_STEP_HZ = 1000

# Step report codes index STEP_TABLE; the trailing entry is the sentinel
STEP_UNKNOWN = None
STEP_CODES: tuple[int | None, ...] = (*STEP_TABLE, STEP_UNKNOWN)


def decode_mode(code: int) -> Mode | Unknown:
    try:
        return Mode(code)
    except ValueError:
        return Unknown(code)


def decode_filter(code: int) -> Filter | Unknown:
    try:
        return Filter(code)
    except ValueError:
        return Unknown(code)


def decode_step(code: int) -> int | Unknown:
    """Decode a step report code into a step size in Hz."""
    if 0 <= code < len(STEP_CODES) and STEP_CODES[code] is not STEP_UNKNOWN:
        return STEP_CODES[code]
    return Unknown(code)


def mode_by_label(label: str) -> Mode | None:
    """Look up a mode by its display label or enum name, case-insensitively."""
    wanted = label.strip().upper()
    for mode, text in MODE_LABELS.items():
        if wanted in (text.upper(), mode.name):
            return mode
    return None


def label_of(value: Mode | Filter | Unknown | int | None) -> str:
    """Display text for a decoded table value."""
    if value is None:
        return "Unknown"
    if isinstance(value, (Mode, Filter, Unknown)):
        return value.label
    return format_step(value)


def format_step(hz: int) -> str:
    if hz >= 1000 and hz % 1000 == 0:
        return f"{hz // 1000} kHz"
    if hz >= 1000:
        khz, rest = divmod(hz, 1000)
        return f"{khz}.{rest:03d}".rstrip("0") + " kHz"
    return f"{hz} Hz"

"""Data models for receiver state and protocol lookup tables."""

from .receiver import ReceiverState
from .tables import (
    Filter,
    Mode,
    StepTable,
    Unknown,
    STEP_TABLE,
    RX_MODE_CYCLE,
)

"""Receiver state as last reported by the radio."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..utils.frequency import format_frequency
from .tables import Filter, Mode, Unknown, label_of


@dataclass
class ReceiverState:
    """Latest known receiver settings.

    ``frequency_digits`` is the digit string exactly as decoded from the
    last frequency frame, kept for lossless display. ``step`` is a step size
    in Hz, ``None`` before anything is known, or :class:`Unknown`.
    """

    frequency: int = 0
    frequency_digits: str = "0"
    mode: Mode | Unknown | None = None
    filter: Filter | Unknown | None = None
    step: int | Unknown | None = None

    @property
    def step_hz(self) -> int | None:
        """The step size if it is a known value, else ``None``."""
        if isinstance(self.step, int):
            return self.step
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency_hz": self.frequency,
            "frequency": format_frequency(self.frequency),
            "frequency_digits": self.frequency_digits,
            "mode": label_of(self.mode),
            "mode_code": _code(self.mode),
            "filter": label_of(self.filter),
            "filter_code": _code(self.filter),
            "step": label_of(self.step),
            "step_hz": self.step_hz,
        }


def _code(value: Mode | Filter | Unknown | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, Unknown):
        return value.code
    return int(value.value)

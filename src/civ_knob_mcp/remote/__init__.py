"""Knob remote: HID report decoding and the knob state machine."""

from .controller import KnobController, KnobMode, PressLength
from .report import Button, KnobDirection, RemoteReport, ReportLayout, decode_report

"""Transports: CI-V serial link and HID knob remote."""

from .base import ByteTransport, ReportSource

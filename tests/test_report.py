"""Tests for knob remote HID report decoding."""

from civ_knob_mcp.remote.report import (
    Button,
    KnobDirection,
    ReportLayout,
    decode_report,
)

IDLE_BUTTONS = 0xFF


def _report(direction: int = 0, buttons: int = IDLE_BUTTONS) -> bytes:
    return bytes([0x00, 0x00, 0x00, direction, 0x00, buttons, 0x00, 0x00])


def test_idle_report():
    report = decode_report(_report())
    assert report is not None
    assert report.direction is None
    assert report.pressed == frozenset()


def test_clockwise_tick():
    assert decode_report(_report(0x01)).direction is KnobDirection.CLOCKWISE


def test_counter_clockwise_tick():
    assert decode_report(_report(0xFF)).direction is KnobDirection.COUNTER_CLOCKWISE


def test_buttons_are_active_low():
    report = decode_report(_report(buttons=0xFB))
    assert report.pressed == frozenset({Button.MODE})

    report = decode_report(_report(buttons=0xFC))
    assert report.pressed == frozenset({Button.PRIMARY, Button.SECONDARY})


def test_short_report():
    assert decode_report(b"\x00\x00\x00\x01") is None


def test_custom_layout():
    layout = ReportLayout(
        direction_offset=1,
        buttons_offset=2,
        clockwise_code=0x02,
        counter_clockwise_code=0x03,
        button_masks={Button.MODE: 0x80},
    )
    report = decode_report(bytes([0x00, 0x03, 0x7F]), layout)
    assert report.direction is KnobDirection.COUNTER_CLOCKWISE
    assert report.pressed == frozenset({Button.MODE})

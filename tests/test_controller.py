"""Tests for the knob state machine."""

import logging

import pytest

from civ_knob_mcp.models.tables import AIR_STEP_TABLE, STEP_TABLE, Mode
from civ_knob_mcp.protocol.commands import build_set_frequency, build_set_mode
from civ_knob_mcp.protocol.engine import ReceiverEngine
from civ_knob_mcp.remote.controller import (
    PRESET_KEYS,
    KnobController,
    KnobMode,
    PressLength,
)
from civ_knob_mcp.remote.report import Button, KnobDirection

CW = KnobDirection.CLOCKWISE
CCW = KnobDirection.COUNTER_CLOCKWISE


def _controller(sensitivity: int = 1, presets=None, **kwargs) -> KnobController:
    engine = ReceiverEngine()
    engine.state.frequency = 145_500_000
    engine.state.step = 12500
    return KnobController(engine, presets=presets, sensitivity=sensitivity, **kwargs)


def _report(direction: int = 0, buttons: int = 0xFF) -> bytes:
    return bytes([0x00, 0x00, 0x00, direction, 0x00, buttons])


# ─── KNOB TICKS ──────────────────────────────────────────────────────

def test_every_third_tick_acts():
    """With sensitivity 3, only the third tick tunes."""
    c = _controller(sensitivity=3)
    assert c.tick(CW) is False
    assert c.tick(CW) is False
    assert c.tick(CW) is True
    assert c.engine.state.frequency == 145_512_500
    assert c.engine.pending == [build_set_frequency(145_512_500)]


def test_six_ticks_two_actions():
    """Six ticks at sensitivity 3 act twice."""
    c = _controller(sensitivity=3)
    acted = [c.tick(CW) for _ in range(6)]
    assert acted.count(True) == 2
    assert c.engine.state.frequency == 145_525_000


def test_direction_change_restarts_count():
    """Reversing the knob restarts the tick count."""
    c = _controller(sensitivity=3)
    c.tick(CW)
    c.tick(CW)
    assert [c.tick(CCW) for _ in range(3)] == [False, False, True]
    assert c.engine.state.frequency == 145_487_500


def test_tuning_floors_at_zero():
    """Tuning down never goes below 0 Hz."""
    c = _controller()
    c.engine.state.frequency = 5000
    c.tick(CCW)
    assert c.engine.state.frequency == 0


def test_unknown_step_tunes_by_default():
    """With no known step, the knob tunes by 1 kHz."""
    c = _controller()
    c.engine.state.step = None
    c.tick(CW)
    assert c.engine.state.frequency == 145_501_000


def test_invalid_sensitivity():
    """Sensitivity below 1 is refused."""
    with pytest.raises(ValueError):
        _controller(sensitivity=0)


# ─── STEP MODE ───────────────────────────────────────────────────────

def test_step_mode_changes_step_locally():
    """Step mode changes the step without sending anything."""
    c = _controller()
    c.mode_button(PressLength.SHORT)
    assert c.mode is KnobMode.STEP
    c.tick(CW)
    assert c.engine.state.step == 20000
    assert c.engine.pending == []
    c.tick(CCW)
    c.tick(CCW)
    assert c.engine.state.step == 10000


def test_step_index_wraps_down():
    """Stepping down from the first entry wraps to the last."""
    c = _controller()
    c.mode = KnobMode.STEP
    c.engine.state.step = STEP_TABLE[0]
    c.tick(CCW)
    assert c.engine.state.step == STEP_TABLE[-1]


def test_step_index_wraps_up():
    """Stepping up from the last entry wraps to the first."""
    c = _controller()
    c.mode = KnobMode.STEP
    c.engine.state.step = STEP_TABLE[-1]
    c.tick(CW)
    assert c.engine.state.step == STEP_TABLE[0]


def test_alternate_step_table():
    """A controller can walk the airband step table."""
    c = _controller(step_table=AIR_STEP_TABLE)
    c.mode = KnobMode.STEP
    c.engine.state.step = 8330
    c.tick(CW)
    assert c.engine.state.step == 25000


def test_new_step_used_back_in_freq_mode():
    """A step picked in step mode is used for tuning."""
    c = _controller()
    c.mode = KnobMode.STEP
    c.tick(CW)
    c.mode_button(PressLength.SHORT)
    assert c.mode is KnobMode.FREQ
    c.tick(CW)
    assert c.engine.state.frequency == 145_520_000


# ─── RX MODE ─────────────────────────────────────────────────────────

def test_rx_mode_cycles_and_sends():
    """RX mode walks the mode cycle and sends each mode."""
    c = _controller()
    c.engine.state.mode = Mode.FM
    c.mode_button(PressLength.LONG)
    assert c.mode is KnobMode.RXMODE
    c.tick(CW)
    c.tick(CW)
    assert c.engine.pending == [build_set_mode(Mode.AM), build_set_mode(Mode.USB)]


def test_rx_mode_wraps_backwards():
    """RX mode wraps from the first mode to the last."""
    c = _controller()
    c.engine.state.mode = Mode.FM
    c.mode = KnobMode.RXMODE
    c.tick(CCW)
    assert c.engine.pending == [build_set_mode(Mode.DV)]


def test_rx_mode_from_mode_outside_cycle():
    """A mode outside the cycle starts the walk at FM."""
    c = _controller()
    c.engine.state.mode = Mode.P25
    c.mode = KnobMode.RXMODE
    c.tick(CW)
    assert c.engine.pending == [build_set_mode(Mode.FM)]


# ─── MODE BUTTON ─────────────────────────────────────────────────────

def test_mode_button_transitions():
    """Short goes to step mode, long to RX mode, any press back."""
    c = _controller()
    assert c.mode_button(PressLength.SHORT) is KnobMode.STEP
    assert c.mode_button(PressLength.LONG) is KnobMode.FREQ
    assert c.mode_button(PressLength.LONG) is KnobMode.RXMODE
    assert c.mode_button(PressLength.SHORT) is KnobMode.FREQ


def test_press_classification_boundary():
    """499 ms is short, 500 ms is long."""
    c = _controller()
    assert c.classify(499) is PressLength.SHORT
    assert c.classify(500) is PressLength.LONG


def test_press_release_cycle():
    """Press and release of the mode button are timed and applied."""
    c = _controller()
    c.press(Button.MODE, 1000)
    assert c.release(Button.MODE, 1499) is PressLength.SHORT
    assert c.mode is KnobMode.STEP

    c.press(Button.MODE, 2000)
    assert c.release(Button.MODE, 2500) is PressLength.LONG
    assert c.mode is KnobMode.FREQ


def test_repeated_press_keeps_first_timestamp():
    """A repeated press does not restart the timer."""
    c = _controller()
    c.press(Button.MODE, 0)
    c.press(Button.MODE, 400)
    assert c.release(Button.MODE, 600) is PressLength.LONG


def test_release_clears_timestamp_once():
    """A second release without a new press does nothing."""
    c = _controller()
    c.press(Button.MODE, 0)
    assert c.release(Button.MODE, 100) is PressLength.SHORT
    assert c.release(Button.MODE, 200) is None
    assert c.mode is KnobMode.STEP


# ─── PRESETS ─────────────────────────────────────────────────────────

def test_preset_keys():
    """Preset keys combine button and press length."""
    assert PRESET_KEYS == (
        "primary-short",
        "primary-long",
        "secondary-short",
        "secondary-long",
    )


def test_preset_recall_by_button_and_length():
    """Each button and length recalls its own preset."""
    presets = {"primary-short": "433.500", "secondary-long": "7.1"}
    c = _controller(presets=presets)

    c.press(Button.PRIMARY, 0)
    c.release(Button.PRIMARY, 100)
    assert c.engine.state.frequency == 433_500_000

    c.press(Button.SECONDARY, 1000)
    c.release(Button.SECONDARY, 1800)
    assert c.engine.state.frequency == 7_100_000
    assert c.engine.pending == [
        build_set_frequency(433_500_000),
        build_set_frequency(7_100_000),
    ]
    assert c.mode is KnobMode.FREQ


def test_missing_preset(caplog):
    """An unset preset is logged and leaves the frequency."""
    c = _controller(presets={})
    with caplog.at_level(logging.WARNING):
        assert c.recall_preset(Button.PRIMARY, PressLength.LONG) is None
    assert c.engine.state.frequency == 145_500_000
    assert "No preset configured for primary-long" in caplog.text


def test_invalid_preset_keeps_frequency(caplog):
    """An unparseable preset is logged and sends nothing."""
    c = _controller(presets={"primary-short": "abc"})
    with caplog.at_level(logging.WARNING):
        assert c.recall_preset(Button.PRIMARY, PressLength.SHORT) is None
    assert c.engine.state.frequency == 145_500_000
    assert c.engine.pending == []
    assert "Unparseable frequency 'abc'" in caplog.text
    assert "Preset primary-short not recalled" in caplog.text


# ─── RAW REPORTS ─────────────────────────────────────────────────────

def test_reports_drive_press_and_knob():
    """Raw reports produce button edges and knob ticks."""
    c = _controller()
    c.handle_report(_report(buttons=0xFB), now=0)
    c.handle_report(_report(), now=700)
    assert c.mode is KnobMode.RXMODE

    c.handle_report(_report(buttons=0xFB), now=1000)
    c.handle_report(_report(), now=1100)
    assert c.mode is KnobMode.FREQ

    c.handle_report(_report(direction=0x01), now=1200)
    assert c.engine.state.frequency == 145_512_500


def test_held_button_spans_reports():
    """A button held over several reports is one press."""
    c = _controller()
    c.handle_report(_report(buttons=0xFB), now=0)
    c.handle_report(_report(direction=0x01, buttons=0xFB), now=200)
    c.handle_report(_report(), now=300)
    assert c.mode is KnobMode.STEP
    assert c.engine.state.frequency == 145_512_500


def test_short_report_is_ignored():
    """Reports too short for the layout are dropped."""
    c = _controller()
    c.handle_report(b"\x00\x01", now=0)
    assert c.engine.pending == []


def test_clock_used_without_timestamp():
    """The controller clock times presses by default."""
    times = iter([0, 800])
    c = _controller(clock=lambda: next(times))
    c.handle_report(_report(buttons=0xFB))
    c.handle_report(_report())
    assert c.mode is KnobMode.RXMODE

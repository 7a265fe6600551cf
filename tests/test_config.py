"""Tests for YAML configuration loading."""

import pytest

from civ_knob_mcp.config import CONFIG_ENV, ConfigError, RemoteConfig, load_config
from civ_knob_mcp.models.tables import AIR_STEP_TABLE, STEP_TABLE
from civ_knob_mcp.protocol.engine import StepPolicy
from civ_knob_mcp.remote.report import Button

EXAMPLE = """\
serial:
  port: /dev/ttyUSB0
  baudrate: 9600
hid:
  vendor_id: 0x1234
  button_masks:
    mode: "0x08"
knob:
  sensitivity: 2
  long_press_ms: 750
engine:
  step_policy: EXACT
  min_frequency_frame: 10
presets:
  primary-short: "145.500"
  secondary-long: 7.1
log_level: debug
"""


def test_defaults():
    config = RemoteConfig()
    assert config.serial.port is None
    assert config.serial.baudrate == 19200
    assert config.knob.sensitivity == 3
    assert config.knob.long_press_ms == 500
    assert config.engine.step_policy is StepPolicy.TOLERANCE
    assert config.engine.min_frequency_frame == 11
    assert config.engine.receiver_address == 0x96
    assert config.engine.controller_address == 0xE0
    assert config.presets == {}


def test_default_layout():
    layout = RemoteConfig().hid.layout()
    assert layout.button_masks == {
        Button.PRIMARY: 0x01,
        Button.SECONDARY: 0x02,
        Button.MODE: 0x04,
    }


def test_load_example(tmp_path):
    path = tmp_path / "civ.yaml"
    path.write_text(EXAMPLE)
    config = load_config(path)

    assert config.serial.port == "/dev/ttyUSB0"
    assert config.serial.baudrate == 9600
    assert config.hid.vendor_id == 0x1234
    assert config.hid.layout().button_masks[Button.MODE] == 0x08
    assert config.hid.layout().button_masks[Button.PRIMARY] == 0x01
    assert config.knob.sensitivity == 2
    assert config.knob.long_press_ms == 750
    assert config.engine.step_policy is StepPolicy.EXACT
    assert config.engine.min_frequency_frame == 10
    assert config.presets == {"primary-short": "145.500", "secondary-long": "7.1"}
    assert config.log_level == "DEBUG"


def test_load_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "civ.yaml"
    path.write_text("knob:\n  sensitivity: 5\n")
    monkeypatch.setenv(CONFIG_ENV, str(path))
    assert load_config().knob.sensitivity == 5


def test_no_path_gives_defaults(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    assert load_config() == RemoteConfig()


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == RemoteConfig()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("knob: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_root_must_be_mapping():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict(["not", "a", "mapping"])


def test_unknown_section():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict({"display": {}})


def test_unknown_key():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict({"knob": {"speed": 4}})


def test_bad_step_policy():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict({"engine": {"step_policy": "fuzzy"}})


def test_bad_integer():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict({"knob": {"long_press_ms": "soon"}})


def test_zero_sensitivity():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict({"knob": {"sensitivity": 0}})


def test_unknown_preset_key():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict({"presets": {"tertiary-short": "7.1"}})


def test_unknown_button_mask():
    with pytest.raises(ConfigError):
        RemoteConfig.from_dict({"hid": {"button_masks": {"fire": 1}}})


@pytest.mark.parametrize("length", [0, 5, 9, 12, 50])
def test_bad_min_frequency_frame(length):
    """Only the two frame lengths seen on the wire are accepted."""
    with pytest.raises(ConfigError, match="min_frequency_frame"):
        RemoteConfig.from_dict({"engine": {"min_frequency_frame": length}})


def test_short_frame_variant_accepted():
    """The one-byte-shorter frequency frame variant can be selected."""
    config = RemoteConfig.from_dict({"engine": {"min_frequency_frame": "10"}})
    assert config.engine.min_frequency_frame == 10


def test_air_step_table():
    """The knob can walk the airband step table instead of the standard one."""
    config = RemoteConfig.from_dict({"knob": {"step_table": "AIR"}})
    assert config.knob.step_table == "air"
    assert config.knob.steps() == AIR_STEP_TABLE
    assert RemoteConfig().knob.steps() == STEP_TABLE


def test_unknown_step_table():
    with pytest.raises(ConfigError, match="step_table"):
        RemoteConfig.from_dict({"knob": {"step_table": "marine"}})

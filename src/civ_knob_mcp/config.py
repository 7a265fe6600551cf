"""YAML configuration for the receiver link, knob remote and presets.

Example::

    serial:
      port: /dev/ttyUSB0
      baudrate: 19200
    hid:
      vendor_id: 0x1189
      product_id: 0x8890
      button_masks: {primary: 0x01, secondary: 0x02, mode: 0x04}
    knob:
      sensitivity: 3
      long_press_ms: 500
      step_table: standard
    engine:
      step_policy: tolerance
      min_frequency_frame: 11
    presets:
      primary-short: "145.500"
      primary-long: "433.500"
      secondary-short: "7.1"
      secondary-long: "118.1"

Every section and key is optional.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .models.tables import STEP_TABLES, StepTable
from .protocol.commands import CONTROLLER_ADDRESS, RECEIVER_ADDRESS
from .protocol.engine import StepPolicy
from .protocol.parser import FREQUENCY_FRAME_MINIMUMS, MIN_FREQUENCY_FRAME
from .remote.controller import DEFAULT_LONG_PRESS_MS, DEFAULT_SENSITIVITY, PRESET_KEYS
from .remote.report import DEFAULT_BUTTON_MASKS, Button, ReportLayout
from .transport.hid_remote import HID_INTERFACE, PRODUCT_ID, READ_TIMEOUT_MS, VENDOR_ID
from .transport.serial_connection import DEFAULT_BAUDRATE, READ_TIMEOUT_S

logger = logging.getLogger(__name__)

CONFIG_ENV = "CIV_KNOB_CONFIG"


class ConfigError(ValueError):
    """Raised when a configuration file is unreadable or invalid."""


@dataclass(frozen=True)
class SerialSettings:
    port: str | None = None
    baudrate: int = DEFAULT_BAUDRATE
    timeout_s: float = READ_TIMEOUT_S


@dataclass(frozen=True)
class HidSettings:
    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    interface: int = HID_INTERFACE
    read_timeout_ms: int = READ_TIMEOUT_MS
    direction_offset: int = 3
    buttons_offset: int = 5
    clockwise_code: int = 0x01
    counter_clockwise_code: int = 0xFF
    button_masks: dict[str, int] = field(
        default_factory=lambda: {b.value: m for b, m in DEFAULT_BUTTON_MASKS.items()}
    )

    def layout(self) -> ReportLayout:
        return ReportLayout(
            direction_offset=self.direction_offset,
            buttons_offset=self.buttons_offset,
            clockwise_code=self.clockwise_code,
            counter_clockwise_code=self.counter_clockwise_code,
            button_masks={Button(k): v for k, v in self.button_masks.items()},
        )


@dataclass(frozen=True)
class KnobSettings:
    sensitivity: int = DEFAULT_SENSITIVITY
    long_press_ms: int = DEFAULT_LONG_PRESS_MS
    step_table: str = "standard"

    def steps(self) -> StepTable:
        return STEP_TABLES[self.step_table]


@dataclass(frozen=True)
class EngineSettings:
    step_policy: StepPolicy = StepPolicy.TOLERANCE
    min_frequency_frame: int = MIN_FREQUENCY_FRAME
    receiver_address: int = RECEIVER_ADDRESS
    controller_address: int = CONTROLLER_ADDRESS


@dataclass(frozen=True)
class RemoteConfig:
    serial: SerialSettings = field(default_factory=SerialSettings)
    hid: HidSettings = field(default_factory=HidSettings)
    knob: KnobSettings = field(default_factory=KnobSettings)
    engine: EngineSettings = field(default_factory=EngineSettings)
    presets: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteConfig:
        """Build a config from a parsed YAML mapping, validating values."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping at root")

        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigError(f"Unknown configuration section(s): {sorted(unknown)}")

        hid = _section(data, "hid")
        masks = hid.pop("button_masks", None)
        hid_settings = _build(HidSettings, hid, "hid")
        if masks is not None:
            hid_settings = HidSettings(
                **{**vars(hid_settings), "button_masks": _button_masks(masks)}
            )

        engine = _section(data, "engine")
        if "step_policy" in engine:
            try:
                engine["step_policy"] = StepPolicy(str(engine["step_policy"]).lower())
            except ValueError as e:
                raise ConfigError(
                    f"engine.step_policy must be one of "
                    f"{[p.value for p in StepPolicy]}, got {engine['step_policy']!r}"
                ) from e

        engine_settings = _build(EngineSettings, engine, "engine")
        if engine_settings.min_frequency_frame not in FREQUENCY_FRAME_MINIMUMS:
            raise ConfigError(
                f"engine.min_frequency_frame must be one of "
                f"{list(FREQUENCY_FRAME_MINIMUMS)}, got {engine_settings.min_frequency_frame}"
            )

        knob_values = _section(data, "knob")
        if "step_table" in knob_values:
            knob_values["step_table"] = str(knob_values["step_table"]).lower()
        knob = _build(KnobSettings, knob_values, "knob")
        if knob.sensitivity < 1:
            raise ConfigError(f"knob.sensitivity must be at least 1, got {knob.sensitivity}")
        if knob.step_table not in STEP_TABLES:
            raise ConfigError(
                f"knob.step_table must be one of {list(STEP_TABLES)}, got {knob.step_table!r}"
            )

        return cls(
            serial=_build(SerialSettings, _section(data, "serial"), "serial"),
            hid=hid_settings,
            knob=knob,
            engine=engine_settings,
            presets=_presets(data.get("presets") or {}),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return dict(value)


def _int(value: Any, context: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{context} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise ConfigError(f"{context} must be an integer, got {value!r}")


def _build(cls, values: dict[str, Any], section: str):
    known = {f.name: f for f in fields(cls)}
    unknown = set(values) - set(known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{section}': {sorted(unknown)}")

    for name, value in values.items():
        default = getattr(cls(), name)
        context = f"{section}.{name}"
        if isinstance(default, bool):
            continue
        if isinstance(default, int):
            values[name] = _int(value, context)
        elif isinstance(default, float):
            try:
                values[name] = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{context} must be a number, got {value!r}") from e
    return cls(**values)


def _button_masks(masks: Any) -> dict[str, int]:
    if not isinstance(masks, dict):
        raise ConfigError("hid.button_masks must be a mapping")
    result = {b.value: m for b, m in DEFAULT_BUTTON_MASKS.items()}
    for name, mask in masks.items():
        try:
            button = Button(str(name).lower())
        except ValueError as e:
            raise ConfigError(f"Unknown button '{name}' in hid.button_masks") from e
        result[button.value] = _int(mask, f"hid.button_masks.{name}")
    return result


def _presets(presets: Any) -> dict[str, str]:
    if not isinstance(presets, dict):
        raise ConfigError("presets must be a mapping")
    result: dict[str, str] = {}
    for key, value in presets.items():
        if key not in PRESET_KEYS:
            raise ConfigError(f"Unknown preset key '{key}', expected one of {list(PRESET_KEYS)}")
        result[key] = str(value)
    return result


def load_config(path: str | Path | None = None) -> RemoteConfig:
    """Load configuration from ``path``, or from ``$CIV_KNOB_CONFIG``.

    A path of ``None`` with no environment variable gives the defaults.

    Raises:
        ConfigError: If the file cannot be read or is invalid.
    """
    path = path or os.environ.get(CONFIG_ENV)
    if not path:
        return RemoteConfig()

    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    config = RemoteConfig.from_dict(loaded or {})
    logger.info("Loaded configuration from %s", path)
    return config

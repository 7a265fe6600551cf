"""MCP server entry point for the CI-V receiver and knob remote.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport. The knob remote keeps working
in the background while the server runs.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import RemoteConfig, load_config
from .logbook import LogBook
from .models.tables import (
    MODE_LABELS,
    RX_MODE_CYCLE,
    STEP_TABLE,
    STEP_TABLES,
    format_step,
    mode_by_label,
)
from .remote.controller import PRESET_KEYS, KnobMode, PressLength
from .remote.report import Button
from .session import Session
from .transport.hid_remote import HidRemote
from .transport.serial_connection import SerialConnection, list_serial_ports
from .utils.bcd import MAX_FREQUENCY_HZ
from .utils.frequency import HZ_PER_MHZ, format_frequency, parse_frequency

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "civ-knob",
    instructions="MCP server for a CI-V receiver tuned from a rotary knob remote",
)

# Global session state
_config: RemoteConfig = RemoteConfig()
_session: Session | None = None
_logbook = LogBook().install()


def _get_session() -> Session:
    """Get the active session, raising if not connected."""
    if _session is None:
        raise RuntimeError(
            "Not connected to the receiver. Use the 'connect' tool first."
        )
    return _session


def _state_dict(session: Session) -> dict[str, Any]:
    result = session.engine.snapshot().to_dict()
    result["knob_mode"] = session.controller.mode.value
    result["transmit_enabled"] = session.engine.can_transmit
    return result


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def list_ports() -> dict[str, Any]:
    """List serial ports that may carry the receiver's CI-V link."""
    return {"ports": list_serial_ports()}


@mcp.tool()
def connect(port: str | None = None) -> dict[str, Any]:
    """Open the CI-V serial port and the knob remote, then start polling.

    Either device may be missing: without the serial port the session only
    tracks state, without the remote it only takes commands from tools.

    Args:
        port: Serial device, e.g. /dev/ttyUSB0 or COM3. Defaults to the
            configured port.
    """
    global _session
    if _session is not None:
        return {"connected": True, "message": "Already connected"}

    session = Session(_config)
    result: dict[str, Any] = {"connected": True}

    port = port or _config.serial.port
    if port:
        serial_conn = SerialConnection(
            port, _config.serial.baudrate, _config.serial.timeout_s
        )
        try:
            serial_conn.open()
            session.attach_transport(serial_conn)
            result["port"] = port
        except ConnectionError as e:
            logger.warning("%s", e)
            result["port_error"] = str(e)
    else:
        result["port_error"] = "No serial port configured"

    remote = HidRemote(
        _config.hid.vendor_id, _config.hid.product_id, _config.hid.interface
    )
    try:
        info = remote.open()
        session.attach_remote(remote)
        result["remote"] = f"{info.manufacturer} {info.product}".strip()
    except ConnectionError as e:
        logger.warning("%s", e)
        result["remote_error"] = str(e)

    session.start()
    _session = session
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Stop polling and close the serial port and knob remote."""
    global _session
    if _session is None:
        return {"disconnected": True}
    _session.close()
    _session = None
    return {"disconnected": True}


# ─── RECEIVER TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def get_receiver_state() -> dict[str, Any]:
    """Return the latest frequency, mode, filter and step."""
    return _state_dict(_get_session())


@mcp.tool()
def refresh_state() -> dict[str, Any]:
    """Ask the receiver to report its frequency, mode and step.

    Replies are applied by the polling loop; read them back with
    get_receiver_state.
    """
    session = _get_session()
    session.engine.query_all()
    return {"queued": len(session.engine.pending)}


@mcp.tool()
def set_frequency(frequency: str) -> dict[str, Any]:
    """Tune the receiver.

    Args:
        frequency: MHz with an optional fraction, e.g. "145.500" or "7.1".
    """
    session = _get_session()
    hz = parse_frequency(frequency)
    if hz is None:
        return {
            "error": f"Could not parse frequency {frequency!r}, "
            f"expected MHz up to {MAX_FREQUENCY_HZ / HZ_PER_MHZ:.6f}"
        }

    session.engine.set_frequency(hz)
    return {"frequency_hz": hz, "frequency": format_frequency(hz)}


@mcp.tool()
def set_mode(mode: str) -> dict[str, Any]:
    """Change the receive mode.

    Args:
        mode: Mode name such as FM, AM, USB, LSB, WFM, CW or DV.
    """
    session = _get_session()
    found = mode_by_label(mode)
    if found is None:
        return {"error": f"Unknown mode '{mode}'. Valid: {list(MODE_LABELS.values())}"}
    session.engine.set_mode(found.value)
    return {"mode": found.label, "mode_code": found.value}


@mcp.tool()
def recall_preset(key: str) -> dict[str, Any]:
    """Tune to a configured preset.

    Args:
        key: One of primary-short, primary-long, secondary-short, secondary-long.
    """
    session = _get_session()
    if key not in PRESET_KEYS:
        return {"error": f"Unknown preset '{key}'. Valid: {list(PRESET_KEYS)}"}
    button, _, length = key.partition("-")

    hz = session.controller.recall_preset(Button(button), PressLength(length))
    if hz is None:
        return {"error": f"Preset '{key}' is not configured or invalid"}
    return {"frequency_hz": hz, "frequency": format_frequency(hz)}


@mcp.tool()
def get_knob_mode() -> dict[str, str]:
    """Return what the knob currently adjusts: freq, step or rxmode."""
    return {"knob_mode": _get_session().controller.mode.value}


@mcp.tool()
def set_knob_mode(mode: str) -> dict[str, str]:
    """Choose what the knob adjusts.

    Args:
        mode: freq, step or rxmode.
    """
    session = _get_session()
    try:
        session.controller.mode = KnobMode(mode.lower())
    except ValueError:
        return {"error": f"Unknown knob mode '{mode}'. Valid: {[m.value for m in KnobMode]}"}
    return {"knob_mode": session.controller.mode.value}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("civ://receiver/state")
def resource_receiver_state() -> str:
    """Current receiver state."""
    if _session is None:
        return json.dumps({"connected": False})
    return json.dumps({"connected": True, **_state_dict(_session)})


@mcp.resource("civ://catalog/modes")
def resource_mode_catalog() -> str:
    """All known receive modes with their CI-V codes."""
    return json.dumps({
        "modes": [{"name": label, "code": int(mode)} for mode, label in MODE_LABELS.items()],
        "knob_cycle": [mode.label for mode in RX_MODE_CYCLE],
    })


@mcp.resource("civ://catalog/steps")
def resource_step_catalog() -> str:
    """Tuning steps in knob order."""
    return json.dumps({
        "steps": [{"hz": hz, "label": format_step(hz)} for hz in STEP_TABLE],
        "tables": {name: list(table) for name, table in STEP_TABLES.items()},
        "knob_table": _config.knob.step_table,
    })


@mcp.resource("civ://presets")
def resource_presets() -> str:
    """Configured preset frequencies."""
    return json.dumps({"presets": {key: _config.presets.get(key) for key in PRESET_KEYS}})


@mcp.resource("civ://log")
def resource_log() -> str:
    """Recent log messages from the receiver link and knob remote."""
    return json.dumps({"log": _logbook.entries()})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main(argv: list[str] | None = None):
    """Run the MCP server with stdio transport."""
    global _config
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--port", help="CI-V serial port, overrides the config")
    args = parser.parse_args(argv)

    _config = load_config(args.config)
    if args.port:
        _config = replace(_config, serial=replace(_config.serial, port=args.port))

    logging.basicConfig(level=_config.log_level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

"""CI-V receiver bridge with a rotary-knob HID remote, exposed over MCP."""

__version__ = "0.1.0"

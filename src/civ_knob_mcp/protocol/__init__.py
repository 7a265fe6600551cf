"""Protocol layer: CI-V framing, command builders, response parsing and state engine."""

from .framing import Frame, FrameAssembler, build_frame, parse_frame
from .commands import Command, build_command

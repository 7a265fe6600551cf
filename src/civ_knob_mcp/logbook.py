"""Collects log records from every component for display.

Components only log through :mod:`logging`; the single :class:`LogBook`
attached to the package logger owns the recent history.
"""

from __future__ import annotations

import logging
from collections import deque

PACKAGE_LOGGER = "civ_knob_mcp"
DEFAULT_CAPACITY = 200
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LogBook(logging.Handler):
    """A logging handler keeping the last ``capacity`` formatted records."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._records: deque[str] = deque(maxlen=capacity)
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self.lock:
            self._records.append(message)

    def entries(self, limit: int | None = None) -> list[str]:
        """Recent messages, oldest first."""
        with self.lock:
            records = list(self._records)
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    def clear(self) -> None:
        with self.lock:
            self._records.clear()

    def install(self, name: str = PACKAGE_LOGGER) -> LogBook:
        """Attach to the named logger and return self."""
        logger = logging.getLogger(name)
        if self not in logger.handlers:
            logger.addHandler(self)
        return self

    def uninstall(self, name: str = PACKAGE_LOGGER) -> None:
        logging.getLogger(name).removeHandler(self)

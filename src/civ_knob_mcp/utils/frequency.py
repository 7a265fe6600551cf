"""Human frequency strings <-> integer Hz.

Input strings are megahertz with an optional fraction of up to six digits:
``"145.500"``, ``"7.1"``, ``".5"``, ``"430"``. Arithmetic stays in integers.
"""

from __future__ import annotations

import logging

from .bcd import MAX_FREQUENCY_HZ

logger = logging.getLogger(__name__)

FRACTION_DIGITS = 6
HZ_PER_MHZ = 10 ** FRACTION_DIGITS
_DIGITS = frozenset("0123456789")


def try_parse_frequency(text: str | None) -> int | None:
    """Convert a frequency string in MHz into integer Hz.

    Non-digit characters in the fractional part are dropped, and digits past
    the sixth are ignored.

    Returns:
        The frequency in Hz, or ``None`` if the string is empty or the
        integer part is not a number.
    """
    if text is None:
        return None
    whole, _, fraction = text.strip().partition(".")
    fraction = "".join(ch for ch in fraction if ch in _DIGITS)[:FRACTION_DIGITS]

    if not whole and not fraction:
        return None
    if whole and not set(whole) <= _DIGITS:
        return None

    mhz = int(whole) if whole else 0
    sub = int(fraction.ljust(FRACTION_DIGITS, "0")) if fraction else 0
    return mhz * HZ_PER_MHZ + sub


def parse_frequency(text: str | None, fallback: int | None = None) -> int | None:
    """Like :func:`try_parse_frequency`, but returns ``fallback`` on bad input.

    Input that does not parse, or that is above :data:`MAX_FREQUENCY_HZ`, is
    logged as a warning, never raised.
    """
    hz = try_parse_frequency(text)
    if hz is None:
        logger.warning("Unparseable frequency %r, keeping %s Hz", text, fallback)
        return fallback
    if hz > MAX_FREQUENCY_HZ:
        logger.warning(
            "Frequency %r above %d Hz, keeping %s Hz", text, MAX_FREQUENCY_HZ, fallback
        )
        return fallback
    return hz


def format_frequency(hz: int) -> str:
    """Format Hz for display as dotted MHz, e.g. ``145.500.000``."""
    mhz, rest = divmod(hz, HZ_PER_MHZ)
    khz, units = divmod(rest, 1000)
    return f"{mhz}.{khz:03d}.{units:03d}"

"""Packed BCD codec for CI-V frequency fields.

Each byte carries two decimal digits, high nibble first. Bytes are stored
least significant pair first, so ``145.500.000`` Hz goes on the wire as::

    00 00 50 45 01
"""

from __future__ import annotations

BCD_FREQUENCY_WIDTH = 5  # bytes, 10 digits
MAX_FREQUENCY_HZ = 10 ** (BCD_FREQUENCY_WIDTH * 2) - 1


def bcd_decode(data: bytes) -> str:
    """Decode a little-endian packed BCD field into a digit string.

    Leading zeros are stripped, but a single ``"0"`` is kept so the result
    is never empty for non-empty input. Empty input decodes to ``""``.

    Nibbles above 9 are not rejected here; they come through as hex
    letters and fail later when the caller converts the digits to an int.
    """
    if not data:
        return ""
    digits = "".join(f"{b >> 4:x}{b & 0x0F:x}" for b in reversed(data))
    return digits.lstrip("0") or "0"


def bcd_encode(hz: int) -> bytes:
    """Encode an integer frequency in Hz as 5 packed BCD bytes.

    Raises:
        ValueError: If ``hz`` is negative or needs more than 10 digits.
    """
    if not 0 <= hz <= MAX_FREQUENCY_HZ:
        raise ValueError(
            f"Frequency must be 0-{MAX_FREQUENCY_HZ} Hz, got {hz}"
        )
    digits = f"{hz:010d}"
    pairs = [
        (int(digits[i]) << 4) | int(digits[i + 1])
        for i in range(0, len(digits), 2)
    ]
    return bytes(reversed(pairs))

"""Float to integer conversion."""

from __future__ import annotations

from gozen.logutil import LOGIC_LOGGER

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def float_to_int(value: float, multiplied: float) -> int:
    """Round ``value * multiplied`` half-to-even to a 64-bit integer.

    Raises ValueError for NaN, infinities and results outside the int64 range.
    """
    text = f"{value * multiplied:.0f}"
    try:
        result = int(text)
        if not _INT64_MIN <= result <= _INT64_MAX:
            raise ValueError(f"value out of range: {text}")
    except ValueError as exc:
        LOGIC_LOGGER.error("float_to_int error value=%r err=%s", value, exc)
        raise
    return result
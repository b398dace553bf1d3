"""
Duration text normalization

Durations are typed by hand ("3h", "2h30", "45min", "1.5") and stored verbatim.
They are only turned into numbers when time has to be summed up.
"""

import math
import re

_MINUTE_TOKENS = re.compile(r"minutes|minute|min")

# A bare number below this is read as hours, anything else as minutes
BARE_NUMBER_HOURS_LIMIT = 10


def _to_number(text: str) -> float:
    """Parse a decimal fragment, 0 when it is not a number"""
    try:
        value = float(text.strip().replace(',', '.'))
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def _strip_minute_tokens(text: str) -> str:
    return _MINUTE_TOKENS.sub("", text)


def duration_to_minutes(text: str) -> float:
    """Convert free duration text to minutes. Never raises."""
    text = (text or "").strip().lower()

    if "h" in text:
        hours_part, remainder = text.split("h", 1)
        return _to_number(hours_part) * 60 + _to_number(_strip_minute_tokens(remainder))

    if "min" in text:
        return _to_number(_strip_minute_tokens(text))

    value = _to_number(text)
    if value < BARE_NUMBER_HOURS_LIMIT:
        return value * 60
    return value


def normalize_duration(text: str) -> float:
    """Convert free duration text to non-negative fractional hours.

    >>> normalize_duration("2h30")
    2.5
    >>> normalize_duration("90min")
    1.5
    """
    minutes = duration_to_minutes(text)
    if minutes <= 0:
        return 0.0
    return minutes / 60

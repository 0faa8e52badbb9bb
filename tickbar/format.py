"""Human-friendly formatting of durations, byte sizes and counts."""

from __future__ import annotations

import math
from datetime import timedelta
from typing import Union

DurationLike = Union[timedelta, int, float]

_NANOS_PER_SECOND = 1_000_000_000

_SECOND = _NANOS_PER_SECOND
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_YEAR = 365 * _DAY

_UNITS = (
    (_YEAR, "year", "y"),
    (_WEEK, "week", "w"),
    (_DAY, "day", "d"),
    (_HOUR, "hour", "h"),
    (_MINUTE, "minute", "m"),
    (_SECOND, "second", "s"),
)

_BINARY_PREFIXES = ("Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi")
_DECIMAL_PREFIXES = ("k", "M", "G", "T", "P", "E", "Z", "Y")


def _to_nanos(duration: DurationLike) -> int:
    """Convert a timedelta or a number of seconds to whole nanoseconds."""
    if isinstance(duration, timedelta):
        whole_seconds = duration.days * 86_400 + duration.seconds
        nanos = whole_seconds * _NANOS_PER_SECOND + duration.microseconds * 1_000
    elif isinstance(duration, (int, float)) and not isinstance(duration, bool):
        if isinstance(duration, float) and not math.isfinite(duration):
            raise ValueError(f"duration must be finite, got {duration!r}")
        nanos = round(duration * _NANOS_PER_SECOND)
    else:
        raise TypeError(f"expected a timedelta or seconds, got {type(duration).__name__}")
    if nanos < 0:
        raise ValueError("duration must not be negative")
    return nanos


def _check_count(count: int) -> int:
    if isinstance(count, bool) or not isinstance(count, int):
        raise TypeError(f"expected an integer, got {type(count).__name__}")
    if count < 0:
        raise ValueError("count must not be negative")
    return count


def _group_thousands(digits: str) -> str:
    """Insert a comma before every group of three trailing characters."""
    length = len(digits)
    pieces = []
    for offset, char in enumerate(digits):
        pieces.append(char)
        remaining = length - offset - 1
        if remaining > 0 and remaining % 3 == 0:
            pieces.append(",")
    return "".join(pieces)


def _round_half_away(value: float) -> int:
    floor = math.floor(value)
    return int(floor) + (1 if value - floor >= 0.5 else 0)


def formatted_duration(duration: DurationLike) -> str:
    """Format as ``HH:MM:SS``, prefixed by ``Nd`` when at least a day long."""
    total = _to_nanos(duration) // _NANOS_PER_SECOND
    total, seconds = divmod(total, 60)
    total, minutes = divmod(total, 60)
    days, hours = divmod(total, 24)
    if days > 0:
        return f"{days}d {hours:02}:{minutes:02}:{seconds:02}"
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def human_duration(duration: DurationLike, alternate: bool = False) -> str:
    """Format as a rounded count of the most fitting unit, e.g. ``3 minutes``.

    Values are rounded rather than truncated, and a unit is never shown as
    ``1`` (apart from seconds): around 1.5 units the next smaller unit is used.
    With ``alternate`` the compact form such as ``3m`` is produced.
    """
    nanos = _to_nanos(duration)
    index = len(_UNITS) - 1
    for position, ((current, _, _), (smaller, _, _)) in enumerate(zip(_UNITS, _UNITS[1:])):
        if nanos + smaller // 2 >= current + current // 2:
            index = position
            break

    unit, name, short = _UNITS[index]
    amount = _round_half_away(nanos / unit)
    if index < len(_UNITS) - 1:
        amount = max(amount, 2)

    if alternate:
        return f"{amount}{short}"
    if amount == 1:
        return f"{amount} {name}"
    return f"{amount} {name}s"


def _format_bytes(count: int, base: float, prefixes: tuple[str, ...]) -> str:
    amount = float(_check_count(count))
    steps = 0
    while amount >= base and steps < len(prefixes):
        amount /= base
        steps += 1
    if steps == 0:
        return f"{amount:.0f}B"
    return f"{amount:.2f} {prefixes[steps - 1]}B"


def human_bytes(count: int) -> str:
    """Format a byte count with binary prefixes, e.g. ``3.00 MiB``."""
    return _format_bytes(count, 1024.0, _BINARY_PREFIXES)


def decimal_bytes(count: int) -> str:
    """Format a byte count with SI prefixes, e.g. ``1.50 kB``."""
    return _format_bytes(count, 1000.0, _DECIMAL_PREFIXES)


def binary_bytes(count: int) -> str:
    """Format a byte count with ISO/IEC prefixes, e.g. ``2.00 GiB``."""
    return _format_bytes(count, 1024.0, _BINARY_PREFIXES)


def human_count(count: int) -> str:
    """Format an integer with commas as thousands separators."""
    return _group_thousands(str(_check_count(count)))


def human_float_count(value: float) -> str:
    """Format a float with thousands separators and at most four decimals."""
    number = float(value)
    text = f"{number:.4f}"
    if "." in text:
        int_part, frac_part = text.split(".", 1)
    else:
        int_part, frac_part = str(number), ""
    result = _group_thousands(int_part)
    frac_trimmed = frac_part.rstrip("0")
    if frac_trimmed:
        result += "." + frac_trimmed
    return result
# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# durations.py
# -----------------------------------------------------------------------------
# Purpose:
#   Human-readable durations for config values and console output:
#   "1m 30s" <-> 90.0 seconds.
#
# Design notes:
#   - Units follow the usual humantime spellings; "m" is minutes and "M"
#     is months (30.44 days), years are 365.25 days.
#   - Plain numbers (int, float, or numeric strings) are seconds.
#
# Usage:
#   parse_duration("1h 5min")  -> 3900.0
#   format_duration(90.0)      -> "1m 30s"
# -----------------------------------------------------------------------------

from __future__ import annotations
import re
from typing import Union

_MINUTE = 60.0
_HOUR = 3600.0
_DAY = 86400.0
_MONTH = 2_630_016.0     # 30.44 days
_YEAR = 31_557_600.0     # 365.25 days

_UNITS = {
    "ns": 1e-9, "nsec": 1e-9,
    "us": 1e-6, "usec": 1e-6,
    "ms": 1e-3, "msec": 1e-3,
    "s": 1.0, "sec": 1.0, "secs": 1.0, "second": 1.0, "seconds": 1.0,
    "m": _MINUTE, "min": _MINUTE, "mins": _MINUTE, "minute": _MINUTE, "minutes": _MINUTE,
    "h": _HOUR, "hr": _HOUR, "hrs": _HOUR, "hour": _HOUR, "hours": _HOUR,
    "d": _DAY, "day": _DAY, "days": _DAY,
    "w": 7 * _DAY, "week": 7 * _DAY, "weeks": 7 * _DAY,
    "M": _MONTH, "month": _MONTH, "months": _MONTH,
    "y": _YEAR, "year": _YEAR, "years": _YEAR,
}

_TOKEN = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([A-Za-z]+)")


def parse_duration(value: Union[str, int, float]) -> float:
    """Return ``value`` in seconds.

    Raises ValueError for anything that is neither a number nor a sequence
    of ``<number><unit>`` tokens.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    try:
        return float(text)
    except ValueError:
        pass
    total = 0.0
    pos = 0
    for match in _TOKEN.finditer(text):
        if match.start() != pos:
            break
        number, unit = match.groups()
        scale = _UNITS.get(unit)
        if scale is None:
            scale = _UNITS.get(unit.lower())
        if scale is None:
            raise ValueError(f"Invalid duration: {value!r} (unknown unit {unit!r})")
        total += float(number) * scale
        pos = match.end()
    if pos == 0 or text[pos:].strip():
        raise ValueError(
            f"Invalid duration: {value!r}. Expected human-readable format (e.g. '1m 30s') or a number of seconds."
        )
    return total


def format_duration(seconds: float) -> str:
    """Compact form, e.g. ``"2h 3m 4s 500ms"``; ``"0s"`` for zero."""
    if seconds <= 0:
        return "0s"
    millis = int(round(seconds * 1000.0))
    parts = []
    for label, size in (("y", 31_557_600_000), ("M", 2_630_016_000), ("d", 86_400_000),
                        ("h", 3_600_000), ("m", 60_000), ("s", 1000)):
        count, millis = divmod(millis, size)
        if count:
            parts.append(f"{count}{label}")
    if millis:
        parts.append(f"{millis}ms")
    return " ".join(parts) if parts else "0s"


def format_duration_fixed_width(seconds: float, width: int = 30) -> str:
    """Column-aligned form: once a unit is shown, smaller units are zero-padded.

    Months are approximated as 30 days here so every column has a fixed modulus.
    """
    if seconds < 0:
        return f"{'INVALID':>{width}}"
    total_millis = int(round(seconds * 1000.0))
    millis = total_millis % 1000
    total_secs = total_millis // 1000
    secs, total_mins = total_secs % 60, total_secs // 60
    mins, total_hours = total_mins % 60, total_mins // 60
    hours, total_days = total_hours % 24, total_hours // 24
    days, total_months = total_days % 30, total_days // 30
    months, years = total_months % 12, total_months // 12
    fields = [(years, "y", 4), (months, "m", 2), (days, "d", 2),
              (hours, "h", 2), (mins, "min", 2), (secs, "s", 2)]
    parts = []
    started = False
    for idx, (value, label, pad) in enumerate(fields):
        rest_nonzero = any(v for v, _, _ in fields[idx + 1:]) or millis > 0
        if started:
            if value or rest_nonzero:
                parts.append(f"{value:0{pad}d}{label}")
        elif value:
            parts.append(f"{value:0{pad}d}{label}" if label == "y" else f"{value}{label}")
            started = True
    if millis or not parts:
        parts.append(f"{millis:03d}ms" if started else f"{millis}ms")
    return f"{' '.join(parts):>{width}}"

"""Parsing and formatting of duration strings such as ``"1m30s"``."""

from __future__ import annotations

import re
from datetime import timedelta
from fractions import Fraction

__all__ = ["DurationError", "parse_duration", "format_duration"]

_NS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_MAX_NS = 2**63 - 1
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")


class DurationError(ValueError):
    """Raised when a duration string cannot be parsed."""


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``."""
    original = text
    negative = False
    if text[:1] in ("-", "+"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise DurationError(f"invalid duration {original!r}")

    total = Fraction(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise DurationError(f"invalid duration {original!r}")
        if not unit:
            raise DurationError(f"missing unit in duration {original!r}")
        scale = _NS_PER_UNIT.get(unit)
        if scale is None:
            raise DurationError(f"unknown unit {unit!r} in duration {original!r}")
        value = Fraction(int(whole or "0"))
        if frac:
            value += Fraction(int(frac), 10 ** len(frac))
        total += value * scale
        pos = match.end()

    nanoseconds = int(total)
    limit = _MAX_NS + 1 if negative else _MAX_NS
    if nanoseconds > limit:
        raise DurationError(f"invalid duration {original!r}")
    micros = nanoseconds // 1000
    return timedelta(microseconds=-micros if negative else micros)


def _with_fraction(value: int, precision: int) -> str:
    whole, rem = divmod(value, 10**precision)
    if not rem:
        return str(whole)
    digits = str(rem).zfill(precision).rstrip("0")
    return f"{whole}.{digits}"


def format_duration(value: timedelta) -> str:
    """Format a duration the way ``parse_duration`` reads it, e.g. ``"1m0s"``."""
    nanoseconds = (
        (value.days * 86400 + value.seconds) * 1_000_000_000
        + value.microseconds * 1000
    )
    sign = "-" if nanoseconds < 0 else ""
    u = abs(nanoseconds)
    if u == 0:
        return "0s"
    if u < 1_000_000_000:
        if u < 1_000:
            return f"{sign}{u}ns"
        if u < 1_000_000:
            return f"{sign}{_with_fraction(u, 3)}\u00b5s"
        return f"{sign}{_with_fraction(u, 6)}ms"

    whole_seconds, frac_ns = divmod(u, 1_000_000_000)
    seconds = whole_seconds % 60
    text = _with_fraction(seconds * 1_000_000_000 + frac_ns, 9) + "s"
    minutes_total = whole_seconds // 60
    if minutes_total:
        hours, minutes = divmod(minutes_total, 60)
        text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return sign + text
"""Time and numeric helpers shared by every engine.

Invalid timestamps never raise: ``parse_timestamp`` returns None and every
helper built on it propagates None so callers can skip the sample instead of
poisoning an aggregate.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import UTC, datetime

HOUR_SECONDS = 3600.0


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Args:
        value: ISO-8601 text, e.g. "2026-02-10T00:00:00Z". Naive values are UTC.

    Returns:
        The parsed datetime, or None when the value is missing or malformed.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def hours_between(start: datetime | None, end: datetime | None) -> float | None:
    """Return elapsed hours from start to end.

    Returns:
        Hours as a float, or None when either side is invalid or end < start.
    """
    if start is None or end is None or end < start:
        return None
    return (end - start).total_seconds() / HOUR_SECONDS


def hours_since(moment: datetime, now: datetime) -> float:
    """Non-negative hours elapsed between moment and now."""
    return max(0.0, (now - moment).total_seconds() / HOUR_SECONDS)


def median(values: Iterable[float]) -> float | None:
    """Median of the values; the mean of the two central values for even counts.

    Returns:
        The median, or None for an empty input.
    """
    ordered = sorted(values)
    if not ordered:
        return None
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves toward positive infinity (the dashboard's rounding rule).

    ``round()`` uses banker's rounding, which would turn 62.5 into 62.
    """
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def round_one_decimal(value: float) -> float:
    return round_half_up(value, 1)


def format_hours(value: float) -> str:
    """Format hours with at most one decimal: 20 -> "20h", 3.25 -> "3.3h"."""
    rounded = round_one_decimal(value)
    text = str(int(rounded)) if rounded.is_integer() else f"{rounded:.1f}"
    return f"{text}h"


def clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


def isoformat_z(moment: datetime) -> str:
    """Render an aware datetime as ISO-8601 with a trailing Z."""
    return moment.astimezone(UTC).isoformat().replace("+00:00", "Z")

"""
Recurrence expressions for job schedules.

A schedule's ``repeat`` value is either a named interval or a compact
timespan made of one or more ``<number><unit>`` parts:

    hourly, daily, weekly
    30m, 12h, 1D, 2W, 1M, 1Y, 1D12h

Units: s (seconds), m (minutes), h (hours), D (days), W (weeks),
M (months, 30 days), Y (years, 365 days). ``m`` and ``M`` are case-sensitive;
the other units are not.
"""

from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum

WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_FULL_DAY_NAMES = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}

_PART_RE = re.compile(r"(\d+)([sSmMhHdDwWyY])")

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
    "M": 30 * 86400,
    "y": 365 * 86400,
}


class ScheduleInterval(Enum):
    """Named schedule intervals."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"

    @property
    def seconds(self) -> int:
        """Get interval duration in seconds."""
        if self == ScheduleInterval.HOURLY:
            return 3600
        elif self == ScheduleInterval.DAILY:
            return 86400
        return 604800

    @classmethod
    def from_string(cls, value: str) -> ScheduleInterval:
        """Parse interval from string."""
        value = value.lower().strip()
        for interval in cls:
            if interval.value == value:
                return interval
        raise ValueError(f"Invalid interval: {value}. Must be hourly, daily, or weekly.")


def _unit_seconds(unit: str) -> int:
    if unit in ("m", "M"):
        return _UNIT_SECONDS[unit]
    return _UNIT_SECONDS[unit.lower()]


def parse_repeat(value: str) -> timedelta:
    """
    Parse a recurrence expression into a duration.

    Args:
        value: Named interval or compact timespan.

    Returns:
        The repeat interval.

    Raises:
        ValueError: If the expression is empty, malformed, or zero.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty recurrence")

    try:
        return timedelta(seconds=ScheduleInterval.from_string(text).seconds)
    except ValueError:
        pass

    total = 0
    position = 0
    for match in _PART_RE.finditer(text):
        if match.start() != position:
            break
        total += int(match.group(1)) * _unit_seconds(match.group(2))
        position = match.end()

    if position != len(text):
        raise ValueError(f"malformed recurrence: {value}")
    if total <= 0:
        raise ValueError(f"recurrence must be positive: {value}")

    return timedelta(seconds=total)


def normalize_day(day: str) -> str | None:
    """Return the three-letter day name for ``day``, or None if it is not one."""
    key = str(day).strip().lower()
    if key in WEEKDAYS:
        return key
    return _FULL_DAY_NAMES.get(key)

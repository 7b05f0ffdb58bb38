"""
"HH:MM" time arithmetic and weekday helpers shared by the scheduling code.
"""

from __future__ import annotations

import re
from datetime import date as date_type
from datetime import datetime

from .errors import InvalidInputError


TIME_PATTERN = re.compile(r"[0-9]{2}:[0-9]{2}")

# An end time of "00:00" means midnight, i.e. the last minute of the day.
END_OF_DAY_MINUTES = 1439

# Indexed by date.weekday() (Monday == 0).
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def time_to_minutes(value: str, *, is_end: bool = False) -> int:
    """
    Convert "HH:MM" into minutes since midnight.

    Only a literal "00:00" used as an end time maps to 1439; everything else
    is taken at face value.
    """
    if not isinstance(value, str) or not TIME_PATTERN.fullmatch(value):
        raise InvalidInputError(f"Invalid time format: {value!r}. Expected HH:MM.")

    hours, minutes = (int(part) for part in value.split(":"))
    if not (0 <= hours <= 23) or not (0 <= minutes <= 59):
        raise InvalidInputError(f"Invalid time value: {value!r}.")

    if is_end and hours == 0 and minutes == 0:
        return END_OF_DAY_MINUTES
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    if not (0 <= minutes <= END_OF_DAY_MINUTES):
        raise InvalidInputError(f"Minutes out of range: {minutes}.")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def validate_time_range(start_time: str, end_time: str) -> tuple[int, int]:
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time, is_end=True)
    if start >= end:
        raise InvalidInputError(f"Start time {start_time} must be before end time {end_time}.")
    return start, end


def weekday_name(value: date_type) -> str:
    return WEEKDAY_NAMES[value.weekday()]


def weekday_number(value: date_type) -> int:
    """Day number with Sunday == 0 ... Saturday == 6."""
    return (value.weekday() + 1) % 7


def parse_date(value) -> date_type:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    try:
        return date_type.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise InvalidInputError(f"Invalid date: {value!r}. Expected YYYY-MM-DD.") from exc

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type

from parks.services import get_park

from .errors import ClosedDayError, InvalidInputError
from .timeutils import WEEKDAY_NAMES, parse_date, time_to_minutes, weekday_name


SPECIAL_PERIOD_CLOSED = "closed during special period for this weekday"
REGULAR_CLOSED_DAY = "regular closed day"
MARKED_CLOSED = "marked closed in the park's hours"


@dataclass(frozen=True)
class WorkingHours:
    open: str
    close: str

    @property
    def open_minutes(self) -> int:
        return time_to_minutes(self.open)

    @property
    def close_minutes(self) -> int:
        return time_to_minutes(self.close, is_end=True)


def _hours_from_entry(entry) -> WorkingHours:
    if not isinstance(entry, dict):
        raise InvalidInputError("Park hours are misconfigured.")
    if entry.get("closed"):
        raise ClosedDayError(MARKED_CLOSED)
    return WorkingHours(open=entry.get("open"), close=entry.get("close"))


class WorkingHoursResolver:
    """
    Resolves a park's opening hours for a calendar date.

    Precedence:
    - the first special period (stored order) whose inclusive range contains the date
    - the park's regular closed days
    - custom hours for the weekday, falling back to the default hours
    """

    def resolve_hours(self, park, value) -> WorkingHours:
        target = parse_date(value)
        day = weekday_name(target)

        period = self._special_period_for(park, target)
        if period is not None:
            if day not in (period.open_days or []):
                raise ClosedDayError(SPECIAL_PERIOD_CLOSED)
            return WorkingHours(open=period.open_time, close=period.close_time)

        return self.regular_hours(park, day)

    def regular_hours(self, park, day: str) -> WorkingHours:
        """
        Weekly hours for a weekday name, ignoring special periods.
        """
        if day not in WEEKDAY_NAMES:
            raise InvalidInputError(f"Unknown weekday: {day}.")
        if day in (park.closed_days or []):
            raise ClosedDayError(REGULAR_CLOSED_DAY)

        custom = (park.custom_hours or {}).get(day)
        if custom:
            return _hours_from_entry(custom)
        return _hours_from_entry(park.default_hours)

    def resolve_hours_for(self, park_id, value) -> WorkingHours:
        target = parse_date(value)
        return self.resolve_hours(get_park(park_id), target)

    def is_open(self, park, value) -> bool:
        try:
            self.resolve_hours(park, value)
        except ClosedDayError:
            return False
        return True

    def _special_period_for(self, park, target: date_type):
        for period in park.special_periods.all():
            if period.contains(target):
                return period
        return None

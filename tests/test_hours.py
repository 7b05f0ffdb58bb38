from datetime import date

import pytest

from parks.models import SpecialPeriod
from scheduling.errors import ClosedDayError, InvalidInputError, ParkNotFoundError
from scheduling.hours import (
    MARKED_CLOSED,
    REGULAR_CLOSED_DAY,
    SPECIAL_PERIOD_CLOSED,
    WorkingHoursResolver,
)


MONDAY = date(2024, 1, 8)
TUESDAY = date(2024, 1, 9)
SATURDAY = date(2024, 1, 13)


@pytest.fixture
def resolver() -> WorkingHoursResolver:
    return WorkingHoursResolver()


@pytest.fixture
def winter_period(park) -> SpecialPeriod:
    return SpecialPeriod.objects.create(
        park=park,
        name="Winter holidays",
        start_date=date(2024, 12, 20),
        end_date=date(2025, 1, 5),
        open_days=["Saturday", "Sunday"],
        open_time="10:00",
        close_time="16:00",
    )


@pytest.mark.django_db
class TestRegularHours:
    """Closed days, custom hours and default hours."""

    def test_default_hours(self, resolver, park):
        hours = resolver.resolve_hours(park, TUESDAY)
        assert (hours.open, hours.close) == ("09:00", "18:00")
        assert (hours.open_minutes, hours.close_minutes) == (540, 1080)

    def test_regular_closed_day(self, resolver, park):
        with pytest.raises(ClosedDayError) as exc_info:
            resolver.resolve_hours(park, MONDAY)
        assert exc_info.value.reason == REGULAR_CLOSED_DAY

    def test_custom_hours_override_default(self, resolver, park):
        park.custom_hours = {"Saturday": {"open": "08:00", "close": "00:00", "closed": False}}
        park.save()
        hours = resolver.resolve_hours(park, SATURDAY)
        assert (hours.open, hours.close) == ("08:00", "00:00")
        assert hours.close_minutes == 1439

    def test_custom_hours_marked_closed(self, resolver, park):
        park.custom_hours = {"Tuesday": {"closed": True}}
        park.save()
        with pytest.raises(ClosedDayError) as exc_info:
            resolver.resolve_hours(park, TUESDAY)
        assert exc_info.value.reason == MARKED_CLOSED

    def test_default_hours_marked_closed(self, resolver, park):
        park.default_hours = {"open": "09:00", "close": "18:00", "closed": True}
        park.save()
        assert resolver.is_open(park, TUESDAY) is False

    def test_unknown_weekday_name(self, resolver, park):
        with pytest.raises(InvalidInputError):
            resolver.regular_hours(park, "Funday")


@pytest.mark.django_db
class TestSpecialPeriods:
    """A period containing the date replaces every regular rule."""

    def test_weekday_outside_open_days_is_closed(self, resolver, park, winter_period):
        with pytest.raises(ClosedDayError) as exc_info:
            resolver.resolve_hours(park, date(2024, 12, 24))
        assert exc_info.value.reason == SPECIAL_PERIOD_CLOSED

    def test_open_day_uses_period_hours(self, resolver, park, winter_period):
        hours = resolver.resolve_hours(park, date(2024, 12, 21))
        assert (hours.open, hours.close) == ("10:00", "16:00")

    def test_range_is_inclusive(self, resolver, park, winter_period):
        # Sunday 2025-01-05 is the last day of the period.
        assert resolver.resolve_hours(park, date(2025, 1, 5)).open == "10:00"
        # Monday 2025-01-06 falls back to the regular closed day.
        with pytest.raises(ClosedDayError) as exc_info:
            resolver.resolve_hours(park, date(2025, 1, 6))
        assert exc_info.value.reason == REGULAR_CLOSED_DAY

    def test_period_overrides_regular_closed_day(self, resolver, park):
        SpecialPeriod.objects.create(
            park=park,
            start_date=date(2024, 7, 1),
            end_date=date(2024, 7, 31),
            open_days=["Monday"],
            open_time="08:00",
            close_time="20:00",
        )
        hours = resolver.resolve_hours(park, date(2024, 7, 1))
        assert (hours.open, hours.close) == ("08:00", "20:00")

    def test_first_period_in_stored_order_wins(self, resolver, park):
        SpecialPeriod.objects.create(
            park=park,
            position=2,
            start_date=date(2024, 8, 1),
            end_date=date(2024, 8, 31),
            open_days=["Saturday"],
            open_time="12:00",
            close_time="14:00",
        )
        SpecialPeriod.objects.create(
            park=park,
            position=1,
            start_date=date(2024, 8, 10),
            end_date=date(2024, 8, 20),
            open_days=["Saturday"],
            open_time="07:00",
            close_time="22:00",
        )
        assert resolver.resolve_hours(park, date(2024, 8, 17)).open == "07:00"
        assert resolver.resolve_hours(park, date(2024, 8, 24)).open == "12:00"


@pytest.mark.django_db
class TestLookupByPark:
    def test_resolve_by_id(self, resolver, park):
        assert resolver.resolve_hours_for(park.pk, "2024-01-09").open == "09:00"

    def test_unknown_park(self, resolver):
        with pytest.raises(ParkNotFoundError):
            resolver.resolve_hours_for(9999, "2024-01-09")

    def test_inactive_park_is_unknown(self, resolver, park):
        park.is_active = False
        park.save()
        with pytest.raises(ParkNotFoundError):
            resolver.resolve_hours_for(park.pk, "2024-01-09")

    def test_malformed_date(self, resolver, park):
        with pytest.raises(InvalidInputError):
            resolver.resolve_hours_for(park.pk, "09/01/2024")

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models

from scheduling.errors import InvalidInputError
from scheduling.timeutils import WEEKDAY_NAMES, time_to_minutes


time_validator = RegexValidator(
    regex=r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$",
    message="Use the 24h HH:MM format.",
)


def default_park_hours() -> dict:
    return {"open": "09:00", "close": "18:00", "closed": False}


def _hours_errors(label: str, hours) -> list[str]:
    if not isinstance(hours, dict):
        return [f"{label}: expected an object with open/close/closed."]
    if hours.get("closed"):
        return []
    try:
        start = time_to_minutes(hours.get("open"))
        end = time_to_minutes(hours.get("close"), is_end=True)
    except InvalidInputError as exc:
        return [f"{label}: {exc}"]
    if start >= end:
        return [f"{label}: opening time must be before closing time."]
    return []


class Park(models.Model):
    name = models.CharField(max_length=120, unique=True)
    location = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    default_hours = models.JSONField(default=default_park_hours)
    custom_hours = models.JSONField(default=dict, blank=True)
    closed_days = models.JSONField(default=list, blank=True)
    max_booking_days = models.PositiveSmallIntegerField(default=30, validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name

    def clean(self) -> None:
        super().clean()
        errors: dict[str, list[str]] = {}

        default_errors = _hours_errors("default", self.default_hours)
        if default_errors:
            errors["default_hours"] = default_errors

        custom_errors = []
        if not isinstance(self.custom_hours, dict):
            custom_errors.append("Expected a mapping of weekday name to hours.")
        else:
            for day, hours in self.custom_hours.items():
                if day not in WEEKDAY_NAMES:
                    custom_errors.append(f"Unknown weekday: {day}.")
                    continue
                custom_errors.extend(_hours_errors(day, hours))
        if custom_errors:
            errors["custom_hours"] = custom_errors

        unknown_days = [day for day in (self.closed_days or []) if day not in WEEKDAY_NAMES]
        if unknown_days:
            errors["closed_days"] = [f"Unknown weekday: {day}." for day in unknown_days]

        if errors:
            raise ValidationError(errors)


class SpecialPeriod(models.Model):
    """
    A date range with its own hours and open weekdays.

    Periods are consulted in stored order (position, then id); the first one
    containing a date wins.
    """

    park = models.ForeignKey(Park, on_delete=models.CASCADE, related_name="special_periods")
    name = models.CharField(max_length=120, blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    open_days = models.JSONField(default=list, blank=True)
    open_time = models.CharField(max_length=5, validators=[time_validator])
    close_time = models.CharField(max_length=5, validators=[time_validator])
    position = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position", "id"]
        indexes = [
            models.Index(fields=["park", "start_date", "end_date"], name="idx_period_park_range"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.park} · {self.start_date} → {self.end_date}"

    def contains(self, value) -> bool:
        return self.start_date <= value <= self.end_date

    def clean(self) -> None:
        super().clean()
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError({"end_date": "End date must not be before start date."})
        unknown_days = [day for day in (self.open_days or []) if day not in WEEKDAY_NAMES]
        if unknown_days:
            raise ValidationError({"open_days": [f"Unknown weekday: {day}." for day in unknown_days]})
        hours_errors = _hours_errors("special period", {"open": self.open_time, "close": self.close_time})
        if hours_errors:
            raise ValidationError({"close_time": hours_errors})


class Pricing(models.Model):
    park = models.ForeignKey(Park, on_delete=models.CASCADE, related_name="pricings")
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["park", "name"]
        constraints = [
            models.UniqueConstraint(fields=["park", "name"], name="unique_pricing_park_name"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} - {self.price}"

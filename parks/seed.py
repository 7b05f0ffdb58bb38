from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from .models import Park, Pricing, SpecialPeriod


@dataclass(frozen=True)
class PricingSeed:
    name: str
    price: Decimal
    description: str = ""


@dataclass(frozen=True)
class ParkSeed:
    name: str
    location: str
    description: str
    default_hours: dict
    custom_hours: dict = field(default_factory=dict)
    closed_days: list[str] = field(default_factory=list)
    max_booking_days: int = 30


DEMO_PARK = ParkSeed(
    name="Forest Adventure Park",
    location="Lakeside Forest, North Trail",
    description="Tree-top rope courses and zip lines for all ages.",
    default_hours={"open": "09:00", "close": "18:00", "closed": False},
    custom_hours={
        "Saturday": {"open": "08:00", "close": "20:00", "closed": False},
        "Sunday": {"open": "08:00", "close": "19:00", "closed": False},
    },
    closed_days=["Monday"],
    max_booking_days=60,
)

DEMO_PRICINGS: list[PricingSeed] = [
    PricingSeed(name="Adult", price=Decimal("29.00"), description="Ages 16 and over."),
    PricingSeed(name="Child", price=Decimal("19.00"), description="Ages 6 to 15."),
    PricingSeed(name="Family", price=Decimal("79.00"), description="Two adults and two children."),
]


def _winter_period_dates(today: date_type) -> tuple[date_type, date_type]:
    # The season still running in early January started the previous December.
    start_year = today.year - 1 if today <= date_type(today.year, 1, 5) else today.year
    return date_type(start_year, 12, 20), date_type(start_year + 1, 1, 5)


def seed_demo_park(*, update_existing: bool = False, today: date_type | None = None) -> dict[str, int]:
    """
    Idempotently seed a demo park with pricings and a winter-holiday period.

    - If update_existing is False: creates missing rows only (does not overwrite edits).
    - If update_existing is True: resets the park and its pricings to the seed values.
    """
    created = 0
    updated = 0
    skipped = 0

    park_defaults = {
        "location": DEMO_PARK.location,
        "description": DEMO_PARK.description,
        "default_hours": DEMO_PARK.default_hours,
        "custom_hours": DEMO_PARK.custom_hours,
        "closed_days": DEMO_PARK.closed_days,
        "max_booking_days": DEMO_PARK.max_booking_days,
        "is_active": True,
    }

    def count(was_created: bool) -> None:
        nonlocal created, updated, skipped
        if was_created:
            created += 1
        elif update_existing:
            updated += 1
        else:
            skipped += 1

    with transaction.atomic():
        if update_existing:
            park, was_created = Park.objects.update_or_create(name=DEMO_PARK.name, defaults=park_defaults)
        else:
            park, was_created = Park.objects.get_or_create(name=DEMO_PARK.name, defaults=park_defaults)
        count(was_created)

        for seed in DEMO_PRICINGS:
            defaults = {"price": seed.price, "description": seed.description}
            if update_existing:
                _, was_created = Pricing.objects.update_or_create(park=park, name=seed.name, defaults=defaults)
            else:
                _, was_created = Pricing.objects.get_or_create(park=park, name=seed.name, defaults=defaults)
            count(was_created)

        start, end = _winter_period_dates(today or timezone.localdate())
        _, was_created = SpecialPeriod.objects.get_or_create(
            park=park,
            start_date=start,
            end_date=end,
            defaults={
                "name": "Winter holidays",
                "open_days": ["Tuesday", "Saturday", "Sunday"],
                "open_time": "10:00",
                "close_time": "16:00",
            },
        )
        count(was_created)

    return {"created": created, "updated": updated, "skipped": skipped}

"""
Expands templates (or the park's working hours) into per-date instances.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction

from parks.services import get_park

from .errors import ClosedDayError, InvalidInputError
from .hours import WorkingHoursResolver
from .models import TimeSlotInstance, TimeSlotTemplate
from .templates import templates_for_date
from .timeutils import minutes_to_time, parse_date


logger = logging.getLogger(__name__)


class SlotMaterializer:
    """
    Materializes sellable instances for a park and date.

    Safe to call repeatedly: existing instances are reused, never duplicated,
    and their counters are left untouched.
    """

    def __init__(
        self,
        resolver: WorkingHoursResolver | None = None,
        *,
        block_minutes: int | None = None,
        auto_fill_capacity: int | None = None,
    ) -> None:
        self.resolver = resolver or WorkingHoursResolver()
        self.block_minutes = block_minutes or settings.SLOT_AUTOFILL_BLOCK_MINUTES
        self.auto_fill_capacity = auto_fill_capacity or settings.SLOT_AUTOFILL_CAPACITY
        if self.block_minutes <= 0 or self.auto_fill_capacity <= 0:
            raise InvalidInputError("Auto-fill block size and capacity must be positive.")

    def materialize_for_date(self, park_id, value) -> list[TimeSlotInstance]:
        park = get_park(park_id)
        target = parse_date(value)

        try:
            hours = self.resolver.resolve_hours(park, target)
        except ClosedDayError as exc:
            logger.info("Park %s is closed on %s (%s); nothing to materialize", park.pk, target, exc.reason)
            return []

        templates = templates_for_date(park, target)
        if templates:
            self._drop_unsold_auto_fill(park, target)
            created = sum(self._from_template(template, target) for template in templates)
            windows = {(template.pk, template.start_time, template.end_time) for template in templates}
            instances = [
                instance
                for instance in TimeSlotInstance.objects.filter(park=park, date=target, template__in=templates)
                if (instance.template_id, instance.start_time, instance.end_time) in windows
            ]
        else:
            created = self._auto_fill(park, target, hours.open_minutes, hours.close_minutes)
            instances = list(TimeSlotInstance.objects.filter(park=park, date=target, template__isnull=True))

        if created:
            logger.info("Materialized %s new instance(s) for park %s on %s", created, park.pk, target)
        return sorted(instances, key=lambda instance: (instance.start_time, instance.end_time))

    def materialize_range(self, park_id, start, days: int) -> dict:
        """
        Materialize `days` consecutive dates from `start`, capped by the
        park's booking horizon. Returns the instance count per date.
        """
        park = get_park(park_id)
        first = parse_date(start)
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise InvalidInputError("Number of days must be a positive integer.")

        summary = {}
        for offset in range(min(days, park.max_booking_days)):
            target = first + timedelta(days=offset)
            summary[target] = len(self.materialize_for_date(park.pk, target))
        return summary

    def _from_template(self, template: TimeSlotTemplate, target) -> int:
        _, created = self._get_or_create(
            template=template,
            date=target,
            start_time=template.start_time,
            end_time=template.end_time,
            defaults={
                "park_id": template.park_id,
                "ticket_limit": template.ticket_limit,
                "available_tickets": template.ticket_limit,
                "price_adjustment": template.price_adjustment,
            },
        )
        return int(created)

    def _auto_fill(self, park, target, open_minutes: int, close_minutes: int) -> int:
        existing = set(
            TimeSlotInstance.objects.filter(park=park, date=target, template__isnull=True).values_list(
                "start_time", "end_time"
            )
        )

        created = 0
        cursor = open_minutes
        while cursor < close_minutes:
            block_end = min(cursor + self.block_minutes, close_minutes)
            start_time = minutes_to_time(cursor)
            end_time = minutes_to_time(block_end)

            if (start_time, end_time) not in existing:
                _, was_created = self._get_or_create(
                    park=park,
                    template=None,
                    date=target,
                    start_time=start_time,
                    end_time=end_time,
                    defaults={
                        "ticket_limit": self.auto_fill_capacity,
                        "available_tickets": self.auto_fill_capacity,
                        "price_adjustment": Decimal("0.00"),
                    },
                )
                created += int(was_created)

            cursor = block_end
        return created

    def _drop_unsold_auto_fill(self, park, target) -> None:
        """
        Auto-filled blocks left over from before a template covered the date.
        Blocks that ever had a cart line stay for their bookings but are no
        longer offered.
        """
        stale_ids = list(
            TimeSlotInstance.objects.filter(
                park=park, date=target, template__isnull=True, cart_items__isnull=True
            ).values_list("pk", flat=True)
        )
        if not stale_ids:
            return
        deleted, _ = TimeSlotInstance.objects.filter(pk__in=stale_ids).delete()
        logger.info("Dropped %s auto-filled instance(s) for park %s on %s", deleted, park.pk, target)

    def _get_or_create(self, *, defaults, **lookup):
        """
        Each instance is saved independently. A concurrent materializer that
        wins the insert trips the unique constraint and its row is reused.
        """
        try:
            with transaction.atomic():
                return TimeSlotInstance.objects.get_or_create(defaults=defaults, **lookup)
        except IntegrityError:
            return TimeSlotInstance.objects.get(**lookup), False


def materialize_for_date(park_id, value) -> list[TimeSlotInstance]:
    return SlotMaterializer().materialize_for_date(park_id, value)

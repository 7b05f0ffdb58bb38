"""
Recurring time-slot templates: creation, edits, removal and lookups.

Templates are the source of truth for recurring availability; instances are
materialized from them on demand (see materializer.py).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone

from parks.models import Park, Pricing

from .errors import (
    ClosedDayError,
    InvalidInputError,
    ParkNotFoundError,
    TemplateConflictError,
    TemplateInUseError,
    TemplateNotFoundError,
)
from .hours import WorkingHoursResolver
from .inputs import coerce_id
from .models import TimeSlotInstance, TimeSlotTemplate
from .timeutils import parse_date, time_to_minutes, validate_time_range, weekday_number


logger = logging.getLogger(__name__)

# Indexed by the Sunday-first day numbers stored on templates.
DAY_NUMBER_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True)
class TemplateInput:
    start_time: str
    end_time: str
    days_of_week: tuple[int, ...]
    valid_from: date_type
    ticket_limit: int
    valid_until: date_type | None = None
    price_adjustment: Decimal = Decimal("0.00")
    pricing_ids: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class OverlapConflict:
    template_id: int
    days_of_week: list[int]
    start_time: str
    end_time: str
    valid_from: date_type
    valid_until: date_type | None


def _normalize_days(days) -> list[int]:
    if not days or isinstance(days, (str, bytes)):
        raise InvalidInputError("At least one valid day (0-6) is required.")
    normalized = set()
    for day in days:
        if isinstance(day, bool) or not isinstance(day, int) or not (0 <= day <= 6):
            raise InvalidInputError(f"Invalid day number: {day!r}. Days run from 0 (Sunday) to 6 (Saturday).")
        normalized.add(day)
    return sorted(normalized)


def _as_decimal(value) -> Decimal:
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInputError("Price adjustment must be a number.") from exc


def _validate_input(data: TemplateInput) -> list[int]:
    validate_time_range(data.start_time, data.end_time)
    days = _normalize_days(data.days_of_week)

    valid_from = parse_date(data.valid_from)
    if data.valid_until is not None and parse_date(data.valid_until) < valid_from:
        raise InvalidInputError("validFrom must be before validUntil.")

    if isinstance(data.ticket_limit, bool) or not isinstance(data.ticket_limit, int) or data.ticket_limit < 1:
        raise InvalidInputError("Ticket limit must be a positive integer.")

    _as_decimal(data.price_adjustment)
    return days


def _validate_against_hours(park: Park, data: TemplateInput, days: list[int], resolver: WorkingHoursResolver) -> None:
    """
    The window must sit inside the park's regular hours on every selected
    weekday, and those weekdays must share the same hours.
    """
    slot_start = time_to_minutes(data.start_time)
    slot_end = time_to_minutes(data.end_time, is_end=True)
    common = None
    for day in days:
        name = DAY_NUMBER_NAMES[day]
        try:
            hours = resolver.regular_hours(park, name)
        except ClosedDayError as exc:
            raise ClosedDayError(f"Park is closed on {name} ({exc.reason}).") from exc
        if slot_start < hours.open_minutes or slot_end > hours.close_minutes:
            raise InvalidInputError(
                f"Time slot ({data.start_time}-{data.end_time}) falls outside working hours "
                f"({hours.open}-{hours.close}) on {name}."
            )
        if common is None:
            common = hours
        elif hours != common:
            raise InvalidInputError("Selected days have different working hours.")


def _pricings_for(park: Park, pricing_ids) -> list[Pricing]:
    ids = {coerce_id(pk, "pricing") for pk in (pricing_ids or ())}
    pricings = list(Pricing.objects.filter(park=park, pk__in=ids))
    if len(pricings) != len(ids):
        raise InvalidInputError("Every pricing entry must exist and belong to the park.")
    return pricings


def _ensure_no_duplicate(park: Park, days: list[int], start_time: str, end_time: str, exclude_id=None) -> None:
    candidates = TimeSlotTemplate.objects.filter(park=park, start_time=start_time, end_time=end_time)
    if exclude_id is not None:
        candidates = candidates.exclude(pk=exclude_id)
    wanted = set(days)
    for other in candidates:
        if wanted & set(other.days_of_week):
            raise TemplateConflictError(
                f"A {start_time}-{end_time} template already exists for one of these days."
            )


def _lock_park(park_id) -> Park:
    park = Park.objects.select_for_update().filter(pk=coerce_id(park_id, "park"), is_active=True).first()
    if park is None:
        raise ParkNotFoundError(park_id)
    return park


def create_template(*, park_id, data: TemplateInput, resolver: WorkingHoursResolver | None = None) -> TimeSlotTemplate:
    """
    Create a template safely:
    - Locks the park row so concurrent creations for the park serialize.
    - Rejects a duplicate window on any shared weekday.
    - Relies on a unique constraint as the final guard.
    """
    days = _validate_input(data)
    resolver = resolver or WorkingHoursResolver()

    try:
        with transaction.atomic():
            park = _lock_park(park_id)
            _validate_against_hours(park, data, days, resolver)
            pricings = _pricings_for(park, data.pricing_ids)
            _ensure_no_duplicate(park, days, data.start_time, data.end_time)

            template = TimeSlotTemplate.objects.create(
                park=park,
                start_time=data.start_time,
                end_time=data.end_time,
                days_of_week=days,
                valid_from=parse_date(data.valid_from),
                valid_until=parse_date(data.valid_until) if data.valid_until is not None else None,
                ticket_limit=data.ticket_limit,
                price_adjustment=_as_decimal(data.price_adjustment),
            )
            template.pricings.set(pricings)
    except IntegrityError as exc:
        raise TemplateConflictError("That template was just created. Please refresh and try again.") from exc

    logger.info(
        "Created template %s for park %s (%s-%s, days %s)",
        template.pk,
        template.park_id,
        template.start_time,
        template.end_time,
        days,
    )
    return template


def update_template(
    *,
    template_id,
    data: TemplateInput,
    resolver: WorkingHoursResolver | None = None,
) -> TimeSlotTemplate:
    """
    Update a template in place.

    Already-materialized instances keep their own ticket_limit. Future
    instances that the new weekdays, validity or window no longer match are
    removed, but only while nothing was ever booked on them.
    """
    days = _validate_input(data)
    resolver = resolver or WorkingHoursResolver()

    try:
        with transaction.atomic():
            template = (
                TimeSlotTemplate.objects.select_for_update()
                .filter(pk=coerce_id(template_id, "template"))
                .first()
            )
            if template is None:
                raise TemplateNotFoundError(template_id)
            park = _lock_park(template.park_id)
            _validate_against_hours(park, data, days, resolver)
            pricings = _pricings_for(park, data.pricing_ids)
            _ensure_no_duplicate(park, days, data.start_time, data.end_time, exclude_id=template.pk)

            template.start_time = data.start_time
            template.end_time = data.end_time
            template.days_of_week = days
            template.valid_from = parse_date(data.valid_from)
            template.valid_until = parse_date(data.valid_until) if data.valid_until is not None else None
            template.ticket_limit = data.ticket_limit
            template.price_adjustment = _as_decimal(data.price_adjustment)
            template.save()
            template.pricings.set(pricings)

            pruned = _prune_uncovered_instances(template)
    except IntegrityError as exc:
        raise TemplateConflictError("That time window is already used by another template.") from exc

    logger.info("Updated template %s (pruned %s unsold instances)", template.pk, pruned)
    return template


def _is_current(template: TimeSlotTemplate, instance: TimeSlotInstance) -> bool:
    return (
        template.is_active_on(instance.date)
        and weekday_number(instance.date) in template.days_of_week
        and (instance.start_time, instance.end_time) == (template.start_time, template.end_time)
    )


def _prune_uncovered_instances(template: TimeSlotTemplate) -> int:
    """
    Drop future unsold instances the template no longer describes: a date it
    stopped covering or a window it no longer has. Sold ones stay as booked.
    """
    stale_ids = [
        instance.pk
        for instance in TimeSlotInstance.objects.filter(
            template=template,
            date__gte=timezone.localdate(),
            cart_items__isnull=True,
        ).distinct()
        if not _is_current(template, instance)
    ]
    if not stale_ids:
        return 0
    deleted, _ = TimeSlotInstance.objects.filter(pk__in=stale_ids).delete()
    return deleted


def delete_template(*, template_id) -> None:
    """
    Delete a template together with its instances.
    Refused while any of its instances appears in a cart or booking.
    """
    with transaction.atomic():
        template = TimeSlotTemplate.objects.select_for_update().filter(pk=coerce_id(template_id, "template")).first()
        if template is None:
            raise TemplateNotFoundError(template_id)

        if TimeSlotInstance.objects.filter(template=template, cart_items__isnull=False).exists():
            raise TemplateInUseError("This template has booked time slots and cannot be deleted.")

        template.delete()

    logger.info("Deleted template %s", template_id)


def list_templates(*, park_id, on_date=None, weekday=None, pricing_id=None) -> list[TimeSlotTemplate]:
    pk = coerce_id(park_id, "park")
    if not Park.objects.filter(pk=pk).exists():
        raise ParkNotFoundError(park_id)

    queryset = TimeSlotTemplate.objects.filter(park_id=pk).prefetch_related("pricings")
    if pricing_id is not None:
        queryset = queryset.filter(pricings__id=coerce_id(pricing_id, "pricing")).distinct()

    templates = list(queryset)
    if on_date is not None:
        target = parse_date(on_date)
        templates = [t for t in templates if t.is_active_on(target)]
    if weekday is not None:
        day = _normalize_days([weekday])[0]
        templates = [t for t in templates if day in t.days_of_week]
    return templates


def templates_for_date(park: Park, value) -> list[TimeSlotTemplate]:
    """
    Templates active on the date whose weekdays include it.
    """
    target = parse_date(value)
    day = weekday_number(target)
    candidates = TimeSlotTemplate.objects.filter(park=park, valid_from__lte=target).order_by("start_time", "end_time")
    return [t for t in candidates if t.is_active_on(target) and day in t.days_of_week]


def check_overlap(*, park_id, data: TemplateInput) -> list[OverlapConflict]:
    """
    Templates that would compete with the proposed one: a shared weekday,
    intersecting validity windows, intersecting time ranges and (when
    pricing ids are given) a shared pricing entry.
    """
    days = set(_validate_input(data))
    new_start, new_end = validate_time_range(data.start_time, data.end_time)
    new_from = parse_date(data.valid_from)
    new_until = parse_date(data.valid_until) if data.valid_until is not None else None
    pricing_ids = {coerce_id(pk, "pricing") for pk in (data.pricing_ids or ())}

    park_pk = coerce_id(park_id, "park")
    if not Park.objects.filter(pk=park_pk).exists():
        raise ParkNotFoundError(park_id)

    conflicts = []
    for other in TimeSlotTemplate.objects.filter(park_id=park_pk).prefetch_related("pricings"):
        if not days & set(other.days_of_week):
            continue
        if new_until is not None and other.valid_from > new_until:
            continue
        if other.valid_until is not None and other.valid_until < new_from:
            continue
        other_start, other_end = validate_time_range(other.start_time, other.end_time)
        if not (other_start < new_end and other_end > new_start):
            continue
        if pricing_ids and not pricing_ids & {p.pk for p in other.pricings.all()}:
            continue
        conflicts.append(
            OverlapConflict(
                template_id=other.pk,
                days_of_week=list(other.days_of_week),
                start_time=other.start_time,
                end_time=other.end_time,
                valid_from=other.valid_from,
                valid_until=other.valid_until,
            )
        )
    return conflicts

"""
Ticket counters of time-slot instances.

The instance row is the only authority for remaining capacity. Every change
to available_tickets is one conditional UPDATE so two racing requests can
never both take the last tickets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.db.models import F
from django.db.models.functions import Least
from django.utils import timezone

from .errors import CapacityExceededError, ConcurrencyConflictError, InstanceNotFoundError
from .inputs import coerce_id, coerce_quantity
from .models import TimeSlotInstance


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    instance_id: int
    available_tickets: int
    ticket_limit: int

    @property
    def is_sold_out(self) -> bool:
        return self.available_tickets == 0


def _max_attempts() -> int:
    return max(1, int(getattr(settings, "LEDGER_MAX_ATTEMPTS", 3)))


def _read_available(instance_id: int) -> int:
    available = (
        TimeSlotInstance.objects.filter(pk=instance_id).values_list("available_tickets", flat=True).first()
    )
    if available is None:
        raise InstanceNotFoundError(instance_id)
    return available


def _conditional_decrement(instance_id: int, quantity: int) -> None:
    """
    UPDATE ... SET available = available - q WHERE id = ? AND available >= q
    """
    updated = TimeSlotInstance.objects.filter(pk=instance_id, available_tickets__gte=quantity).update(
        available_tickets=F("available_tickets") - quantity,
        updated_at=timezone.now(),
    )
    if updated == 0:
        raise ConcurrencyConflictError(f"Counter of instance {instance_id} changed during reservation.")


def query(instance_id) -> Availability:
    pk = coerce_id(instance_id, "instance")
    row = TimeSlotInstance.objects.filter(pk=pk).values("available_tickets", "ticket_limit").first()
    if row is None:
        raise InstanceNotFoundError(instance_id)
    return Availability(instance_id=pk, available_tickets=row["available_tickets"], ticket_limit=row["ticket_limit"])


def reserve(instance_id, quantity) -> Availability:
    """
    Take `quantity` tickets from the instance or fail without touching it.

    A lost race is retried a bounded number of times; when the counter no
    longer covers the request the caller gets CapacityExceededError.
    """
    pk = coerce_id(instance_id, "instance")
    quantity = coerce_quantity(quantity)

    available = _read_available(pk)
    for attempt in range(1, _max_attempts() + 1):
        if available < quantity:
            raise CapacityExceededError(pk, requested=quantity, remaining=available)
        try:
            _conditional_decrement(pk, quantity)
        except ConcurrencyConflictError:
            logger.info("Reservation race on instance %s (attempt %s), retrying", pk, attempt)
            available = _read_available(pk)
            continue
        return query(pk)

    raise CapacityExceededError(pk, requested=quantity, remaining=available)


def release(instance_id, quantity) -> Availability:
    """
    Give `quantity` tickets back, never above the instance's ticket_limit.
    """
    pk = coerce_id(instance_id, "instance")
    quantity = coerce_quantity(quantity)

    before = query(pk)
    if before.available_tickets + quantity > before.ticket_limit:
        logger.warning(
            "Release of %s tickets on instance %s clamped to ticket limit %s (available %s)",
            quantity,
            pk,
            before.ticket_limit,
            before.available_tickets,
        )

    updated = TimeSlotInstance.objects.filter(pk=pk).update(
        available_tickets=Least(F("available_tickets") + quantity, F("ticket_limit")),
        updated_at=timezone.now(),
    )
    if updated == 0:
        raise InstanceNotFoundError(instance_id)
    return query(pk)

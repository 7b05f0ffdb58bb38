from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.utils import timezone

from parks.services import get_park, get_pricing, unit_price
from scheduling import ledger
from scheduling.errors import (
    BookingWindowError,
    CartItemNotFoundError,
    InstanceNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
)
from scheduling.inputs import coerce_id, coerce_quantity
from scheduling.models import TimeSlotInstance
from scheduling.timeutils import parse_date, time_to_minutes

from .models import Cart, CartItem


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartItemInput:
    instance_id: int
    pricing_id: int
    quantity: int


def _aware_slot_end(instance: TimeSlotInstance) -> datetime:
    minutes = time_to_minutes(instance.end_time, is_end=True)
    naive = datetime.combine(instance.date, time(hour=minutes // 60, minute=minutes % 60))
    return timezone.make_aware(naive, timezone.get_current_timezone())


def _validate_bookable(instance: TimeSlotInstance, pricing) -> None:
    """
    The pricing must be sold by the slot's park (and by its template, when
    the template restricts pricings). The slot must not have ended and must
    fall inside the park's booking horizon.
    """
    if pricing.park_id != instance.park_id:
        raise InvalidInputError("This pricing is not sold by the park of the time slot.")

    template = instance.template
    if template is not None:
        allowed = set(template.pricings.values_list("pk", flat=True))
        if allowed and pricing.pk not in allowed:
            raise InvalidInputError("This pricing is not offered for the time slot.")

    if _aware_slot_end(instance) <= timezone.now():
        raise BookingWindowError("You cannot book a past time slot.")

    horizon = timezone.localdate() + timedelta(days=instance.park.max_booking_days)
    if instance.date > horizon:
        raise BookingWindowError(
            f"Bookings open at most {instance.park.max_booking_days} days in advance."
        )


def _pending_cart(user, *, create: bool) -> Cart | None:
    """
    The user's pending cart, row-locked. Must run inside a transaction.
    """
    cart = Cart.objects.select_for_update().filter(user=user, status=Cart.Status.PENDING).first()
    if cart is None and create:
        try:
            with transaction.atomic():
                cart = Cart.objects.create(user=user)
        except IntegrityError:
            # Another request opened the pending cart first.
            cart = Cart.objects.select_for_update().get(user=user, status=Cart.Status.PENDING)
    return cart


def _locked_cart_item(user, item_id) -> CartItem:
    pk = coerce_id(item_id, "cart item")
    item = (
        CartItem.objects.select_for_update()
        .filter(pk=pk, cart__user=user, cart__status=Cart.Status.PENDING)
        .first()
    )
    if item is None:
        raise CartItemNotFoundError(item_id)
    return item


def _touch(cart: Cart) -> None:
    cart.save(update_fields=["updated_at"])


def _transition(item: CartItem, status: str) -> None:
    if not item.can_transition_to(status):
        raise InvalidTransitionError(f"A {item.status} booking cannot become {status}.")
    logger.info("Cart item %s: %s -> %s", item.pk, item.status, status)
    item.status = status


def _release_item(item: CartItem, status: str, *, now: datetime) -> None:
    _transition(item, status)
    ledger.release(item.instance_id, item.quantity)
    item.released_at = now
    item.save(update_fields=["status", "released_at", "updated_at"])


def get_cart(*, user) -> Cart | None:
    return (
        Cart.objects.filter(user=user, status=Cart.Status.PENDING)
        .prefetch_related("items__instance", "items__pricing")
        .first()
    )


def add_item(*, user, data: CartItemInput) -> CartItem:
    """
    Hold tickets for the user:
    - Reserves on the instance counter first.
    - Creates the held line, or grows an existing one for the same slot and pricing.
    Both happen in one transaction, so a failed step leaves neither behind.
    """
    instance_pk = coerce_id(data.instance_id, "instance")
    quantity = coerce_quantity(data.quantity)
    pricing = get_pricing(data.pricing_id)

    with transaction.atomic():
        instance = (
            TimeSlotInstance.objects.select_related("park", "template").filter(pk=instance_pk).first()
        )
        if instance is None:
            raise InstanceNotFoundError(data.instance_id)
        _validate_bookable(instance, pricing)
        price = unit_price(pricing, instance.price_adjustment)

        cart = _pending_cart(user, create=True)
        ledger.reserve(instance.pk, quantity)

        item = (
            cart.items.select_for_update()
            .filter(instance=instance, pricing=pricing, status=CartItem.Status.HELD)
            .first()
        )
        if item is None:
            item = CartItem.objects.create(
                cart=cart,
                instance=instance,
                pricing=pricing,
                quantity=quantity,
                unit_price=price,
            )
        else:
            item.quantity += quantity
            item.save(update_fields=["quantity", "updated_at"])
        _touch(cart)

    logger.info("User %s holds %s ticket(s) on instance %s", user.pk, quantity, instance.pk)
    return item


def update_item_quantity(*, user, item_id, quantity) -> CartItem:
    """
    Move a held line to a new quantity by reserving or releasing the difference.
    """
    quantity = coerce_quantity(quantity)

    with transaction.atomic():
        item = _locked_cart_item(user, item_id)
        if item.status != CartItem.Status.HELD:
            raise InvalidTransitionError("Only held tickets can be changed.")

        delta = quantity - item.quantity
        if delta > 0:
            ledger.reserve(item.instance_id, delta)
        elif delta < 0:
            ledger.release(item.instance_id, -delta)

        if delta:
            item.quantity = quantity
            item.save(update_fields=["quantity", "updated_at"])
            _touch(item.cart)

    return item


def remove_item(*, user, item_id) -> CartItem:
    with transaction.atomic():
        item = _locked_cart_item(user, item_id)
        _release_item(item, CartItem.Status.RELEASED, now=timezone.now())
        _touch(item.cart)
    return item


def abandon_cart(cart: Cart, *, payment_status: str | None = None, idle_before: datetime | None = None) -> int | None:
    """
    Release every held line and cancel the cart. Returns the number of
    lines released.

    With `idle_before`, the cart is left alone (and None returned) when it
    was touched at or after that moment, checked under the row lock.
    """
    now = timezone.now()
    with transaction.atomic():
        cart = Cart.objects.select_for_update().get(pk=cart.pk)
        if cart.status != Cart.Status.PENDING:
            raise InvalidTransitionError("Only pending carts can be abandoned.")
        if idle_before is not None and cart.updated_at >= idle_before:
            return None

        held = list(cart.items.select_for_update().filter(status=CartItem.Status.HELD))
        for item in held:
            _release_item(item, CartItem.Status.RELEASED, now=now)

        cart.status = Cart.Status.CANCELLED
        update_fields = ["status", "updated_at"]
        if payment_status:
            cart.payment_status = payment_status
            update_fields.append("payment_status")
        cart.save(update_fields=update_fields)

    logger.info("Cart %s cancelled, %s line(s) released", cart.pk, len(held))
    return len(held)


def clear_cart(*, user) -> int:
    with transaction.atomic():
        cart = _pending_cart(user, create=False)
        if cart is None:
            return 0
        return abandon_cart(cart)


def confirm_cart(*, user, payment_method: str) -> Cart:
    """
    Turn every held line into a confirmed booking with a ticket code.
    The tickets are already taken from the counters, so no ledger call is made.
    """
    if payment_method not in Cart.PaymentMethod.values:
        raise InvalidInputError("Unsupported payment method.")

    now = timezone.now()
    with transaction.atomic():
        cart = _pending_cart(user, create=False)
        held = list(cart.items.select_for_update().filter(status=CartItem.Status.HELD)) if cart else []
        if not held:
            raise InvalidInputError("Your cart is empty.")

        for item in held:
            _transition(item, CartItem.Status.CONFIRMED)
            item.confirmed_at = now
            item.ticket_code = secrets.token_hex(8).upper()
            item.save(update_fields=["status", "confirmed_at", "ticket_code", "updated_at"])

        cart.status = Cart.Status.CONFIRMED
        cart.payment_status = Cart.PaymentStatus.PAID
        cart.payment_method = payment_method
        cart.save(update_fields=["status", "payment_status", "payment_method", "updated_at"])

    logger.info("Cart %s confirmed with %s booking(s)", cart.pk, len(held))
    return cart


def record_payment_failure(*, user) -> int:
    with transaction.atomic():
        cart = _pending_cart(user, create=False)
        if cart is None:
            raise InvalidInputError("Your cart is empty.")
        return abandon_cart(cart, payment_status=Cart.PaymentStatus.FAILED)


def _locked_booking(item_id, user=None) -> CartItem:
    pk = coerce_id(item_id, "cart item")
    item = CartItem.objects.select_for_update().select_related("cart").filter(pk=pk).first()
    if item is None:
        raise CartItemNotFoundError(item_id)
    if user is not None and item.cart.user_id != user.pk and not user.is_staff:
        raise PermissionDenied("You cannot manage another user's booking.")
    return item


def cancel_booking(*, item_id, user=None) -> CartItem:
    """
    Cancel a confirmed booking and give its tickets back.
    When `user` is given only the owner (or staff) may cancel.
    """
    with transaction.atomic():
        item = _locked_booking(item_id, user)
        if item.used:
            raise InvalidTransitionError("Used tickets cannot be cancelled.")
        _release_item(item, CartItem.Status.CANCELLED, now=timezone.now())
    return item


def mark_used(*, item_id) -> CartItem:
    with transaction.atomic():
        item = _locked_booking(item_id)
        if item.status != CartItem.Status.CONFIRMED:
            raise InvalidTransitionError("Only confirmed bookings can be used.")
        if item.used:
            raise InvalidTransitionError("This ticket has already been used.")
        item.used = True
        item.used_at = timezone.now()
        item.save(update_fields=["used", "used_at", "updated_at"])
    logger.info("Ticket %s used", item.ticket_code)
    return item


def list_bookings(*, user) -> list[CartItem]:
    """
    The user's confirmed and cancelled bookings, latest slot first.
    """
    return list(
        CartItem.objects.filter(cart__user=user, status__in=CartItem.BOOKING_STATUSES)
        .select_related("instance", "pricing")
        .order_by("-instance__date", "-instance__start_time", "-pk")
    )


def get_booking(*, item_id, user) -> CartItem:
    pk = coerce_id(item_id, "cart item")
    item = (
        CartItem.objects.select_related("cart", "instance", "pricing")
        .filter(pk=pk, status__in=CartItem.BOOKING_STATUSES)
        .first()
    )
    if item is None:
        raise CartItemNotFoundError(item_id)
    if item.cart.user_id != user.pk and not user.is_staff:
        raise PermissionDenied("You cannot view another user's booking.")
    return item


def park_bookings(*, park_id, on_date=None) -> list[CartItem]:
    """
    Every booking on a park's slots, optionally limited to one date.
    """
    park = get_park(park_id)
    bookings = CartItem.objects.filter(instance__park=park, status__in=CartItem.BOOKING_STATUSES)
    if on_date is not None:
        bookings = bookings.filter(instance__date=parse_date(on_date))
    return list(
        bookings.select_related("cart__user", "instance", "pricing").order_by(
            "instance__date", "instance__start_time", "pk"
        )
    )


def release_expired_carts(*, now: datetime | None = None) -> int:
    """
    Abandon pending carts idle for longer than CART_HOLD_TTL_MINUTES.
    Each cart is handled in its own transaction. Returns the number of carts.
    """
    now = now or timezone.now()
    cutoff = now - timedelta(minutes=settings.CART_HOLD_TTL_MINUTES)

    expired = 0
    for cart in Cart.objects.filter(status=Cart.Status.PENDING, updated_at__lt=cutoff):
        try:
            released = abandon_cart(cart, idle_before=cutoff)
        except InvalidTransitionError:
            # Checked out or cancelled since the query ran.
            continue
        if released is None:
            # Touched since the query ran.
            continue
        expired += 1
    return expired

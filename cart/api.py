from __future__ import annotations

from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from scheduling.errors import SchedulingError
from scheduling.http import PayloadError, authentication_required, error_response, read_json

from .models import Cart, CartItem
from .services import (
    CartItemInput,
    add_item,
    cancel_booking,
    clear_cart,
    confirm_cart,
    get_booking,
    get_cart,
    list_bookings,
    mark_used,
    park_bookings,
    record_payment_failure,
    remove_item,
    update_item_quantity,
)


def item_to_dict(item: CartItem) -> dict:
    instance = item.instance
    return {
        "id": item.pk,
        "instance_id": instance.pk,
        "date": instance.date.isoformat(),
        "start_time": instance.start_time,
        "end_time": instance.end_time,
        "pricing_id": item.pricing_id,
        "pricing": item.pricing.name,
        "quantity": item.quantity,
        "unit_price": str(item.unit_price),
        "total_price": str(item.total_price),
        "status": item.status,
        "ticket_code": item.ticket_code,
        "used": item.used,
    }


def cart_to_dict(cart: Cart | None) -> dict:
    if cart is None:
        return {"id": None, "status": None, "items": [], "total_amount": "0.00"}
    items = [item for item in cart.items.all() if item.status in CartItem.LIVE_STATUSES]
    return {
        "id": cart.pk,
        "status": cart.status,
        "payment_status": cart.payment_status,
        "items": [item_to_dict(item) for item in items],
        "total_amount": str(cart.total_amount),
    }


@require_GET
def cart_api(request):
    """
    GET /api/cart/
    """
    if not request.user.is_authenticated:
        return authentication_required()
    return JsonResponse({"cart": cart_to_dict(get_cart(user=request.user))})


@require_POST
def add_item_api(request):
    """
    POST /api/cart/items/
    Payload (JSON):
      - instance_id: int
      - pricing_id: int
      - quantity: int
    """
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        payload = read_json(request)
        item = add_item(
            user=request.user,
            data=CartItemInput(
                instance_id=payload.get("instance_id"),
                pricing_id=payload.get("pricing_id"),
                quantity=payload.get("quantity"),
            ),
        )
    except PayloadError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "item": item_to_dict(item)}, status=201)


@require_POST
def update_item_api(request, item_id: int):
    """
    POST /api/cart/items/<item_id>/update/
    Payload (JSON):
      - quantity: int
    """
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        payload = read_json(request)
        item = update_item_quantity(user=request.user, item_id=item_id, quantity=payload.get("quantity"))
    except PayloadError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "item": item_to_dict(item)})


@require_POST
def remove_item_api(request, item_id: int):
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        remove_item(user=request.user, item_id=item_id)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "message": "Item removed from cart."})


@require_POST
def clear_cart_api(request):
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        released = clear_cart(user=request.user)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "released_items": released})


@require_POST
def checkout_api(request):
    """
    POST /api/cart/checkout/
    Payload (JSON):
      - payment_method: credit_card | paypal | crypto
    """
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        payload = read_json(request)
        cart = confirm_cart(user=request.user, payment_method=payload.get("payment_method"))
    except PayloadError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse(
        {
            "success": True,
            "message": "Booking confirmed.",
            "cart": cart_to_dict(cart),
        }
    )


@require_POST
def payment_failed_api(request):
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        released = record_payment_failure(user=request.user)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "released_items": released})


@require_POST
def cancel_booking_api(request, item_id: int):
    """
    POST /api/bookings/<item_id>/cancel/
    """
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        item = cancel_booking(item_id=item_id, user=request.user)
    except PermissionDenied:
        return JsonResponse({"error": "You do not have permission to cancel this booking."}, status=403)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "item": item_to_dict(item)})


@require_POST
def mark_used_api(request, item_id: int):
    """
    POST /api/bookings/<item_id>/use/ (staff only)
    """
    if not request.user.is_authenticated:
        return authentication_required()
    if not request.user.is_staff:
        return JsonResponse({"error": "Staff access required."}, status=403)

    try:
        item = mark_used(item_id=item_id)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "item": item_to_dict(item)})


@require_GET
def bookings_api(request):
    """
    GET /api/bookings/
    The signed-in user's confirmed and cancelled bookings.
    """
    if not request.user.is_authenticated:
        return authentication_required()
    return JsonResponse({"bookings": [item_to_dict(item) for item in list_bookings(user=request.user)]})


@require_GET
def booking_detail_api(request, item_id: int):
    if not request.user.is_authenticated:
        return authentication_required()

    try:
        item = get_booking(item_id=item_id, user=request.user)
    except PermissionDenied:
        return JsonResponse({"error": "You do not have permission to view this booking."}, status=403)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"booking": item_to_dict(item)})


@require_GET
def park_bookings_api(request, park_id: int):
    """
    GET /api/parks/<park_id>/bookings/?date=YYYY-MM-DD (staff only)
    """
    if not request.user.is_authenticated:
        return authentication_required()
    if not request.user.is_staff:
        return JsonResponse({"error": "Staff access required."}, status=403)

    try:
        bookings = park_bookings(park_id=park_id, on_date=request.GET.get("date") or None)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse(
        {
            "park_id": park_id,
            "bookings": [
                {**item_to_dict(item), "cart_id": item.cart_id, "user": item.cart.user.get_username()}
                for item in bookings
            ],
        }
    )

from django.urls import path

from .api import (
    add_item_api,
    booking_detail_api,
    bookings_api,
    cancel_booking_api,
    cart_api,
    checkout_api,
    clear_cart_api,
    mark_used_api,
    park_bookings_api,
    payment_failed_api,
    remove_item_api,
    update_item_api,
)


app_name = "cart"

urlpatterns = [
    path("api/cart/", cart_api, name="cart_api"),
    path("api/cart/items/", add_item_api, name="add_item_api"),
    path("api/cart/items/<int:item_id>/update/", update_item_api, name="update_item_api"),
    path("api/cart/items/<int:item_id>/remove/", remove_item_api, name="remove_item_api"),
    path("api/cart/clear/", clear_cart_api, name="clear_cart_api"),
    path("api/cart/checkout/", checkout_api, name="checkout_api"),
    path("api/cart/payment-failed/", payment_failed_api, name="payment_failed_api"),
    path("api/bookings/", bookings_api, name="bookings_api"),
    path("api/bookings/<int:item_id>/", booking_detail_api, name="booking_detail_api"),
    path("api/bookings/<int:item_id>/cancel/", cancel_booking_api, name="cancel_booking_api"),
    path("api/bookings/<int:item_id>/use/", mark_used_api, name="mark_used_api"),
    path("api/parks/<int:park_id>/bookings/", park_bookings_api, name="park_bookings_api"),
]

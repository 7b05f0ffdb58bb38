"""JSON endpoints: payload handling and error-to-status mapping."""

import json
from datetime import date

import pytest
from django.test import Client

from cart.models import CartItem
from scheduling.materializer import materialize_for_date
from scheduling.models import TimeSlotTemplate


def post_json(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type="application/json")


TEMPLATE_PAYLOAD = {
    "start_time": "10:00",
    "end_time": "12:00",
    "days_of_week": [2, 4],
    "valid_from": "2024-01-01",
    "ticket_limit": 12,
    "price_adjustment": "2.50",
}


@pytest.mark.django_db
class TestWorkingHoursApi:
    """GET /api/parks/<id>/working-hours/"""

    def test_open_day(self, client, park):
        response = client.get(f"/api/parks/{park.pk}/working-hours/", {"date": "2024-01-09"})
        assert response.status_code == 200
        assert response.json() == {
            "date": "2024-01-09",
            "day": "Tuesday",
            "closed": False,
            "working_hours": {"open": "09:00", "close": "18:00"},
        }

    def test_closed_day_is_not_an_error(self, client, park):
        response = client.get(f"/api/parks/{park.pk}/working-hours/", {"date": "2024-01-08"})
        assert response.status_code == 200
        assert response.json()["closed"] is True
        assert response.json()["reason"] == "regular closed day"

    def test_missing_and_malformed_dates(self, client, park):
        assert client.get(f"/api/parks/{park.pk}/working-hours/").status_code == 400
        assert client.get(f"/api/parks/{park.pk}/working-hours/", {"date": "soon"}).status_code == 400

    def test_unknown_park(self, client, db):
        response = client.get("/api/parks/999/working-hours/", {"date": "2024-01-09"})
        assert response.status_code == 404


@pytest.mark.django_db
class TestSlotsApi:
    """GET /api/parks/<id>/slots/"""

    def test_materializes_and_lists(self, client, park):
        response = client.get(f"/api/parks/{park.pk}/slots/", {"date": "2024-01-09"})
        assert response.status_code == 200
        slots = response.json()["slots"]
        assert [(s["start_time"], s["end_time"]) for s in slots] == [
            ("09:00", "11:00"),
            ("11:00", "13:00"),
            ("13:00", "15:00"),
            ("15:00", "17:00"),
            ("17:00", "18:00"),
        ]
        assert all(s["available_tickets"] == 20 and s["template_id"] is None for s in slots)

    def test_closed_day_lists_nothing(self, client, park):
        response = client.get(f"/api/parks/{park.pk}/slots/", {"date": "2024-01-08"})
        assert response.status_code == 200
        assert response.json()["slots"] == []

    def test_missing_date(self, client, park):
        assert client.get(f"/api/parks/{park.pk}/slots/").status_code == 400

    def test_instance_availability(self, client, park):
        instance = materialize_for_date(park.pk, date(2024, 1, 9))[0]
        response = client.get(f"/api/instances/{instance.pk}/")
        assert response.status_code == 200
        assert response.json() == {
            "id": instance.pk,
            "available_tickets": 20,
            "ticket_limit": 20,
            "sold_out": False,
        }
        assert client.get("/api/instances/9999/").status_code == 404


@pytest.mark.django_db
class TestTemplatesApi:
    """Template endpoints are readable by anyone and writable by staff."""

    def test_create_requires_staff(self, client, user_client, park):
        url = f"/api/parks/{park.pk}/templates/"
        assert post_json(client, url, TEMPLATE_PAYLOAD).status_code == 401
        assert post_json(user_client, url, TEMPLATE_PAYLOAD).status_code == 403

    def test_create_and_list(self, client, staff_client, park, pricing):
        url = f"/api/parks/{park.pk}/templates/"
        response = post_json(staff_client, url, {**TEMPLATE_PAYLOAD, "pricing_ids": [pricing.pk]})

        assert response.status_code == 201
        template = response.json()["template"]
        assert template["days_of_week"] == [2, 4]
        assert template["price_adjustment"] == "2.50"
        assert template["pricing_ids"] == [pricing.pk]

        listed = client.get(url, {"day_of_week": "4"}).json()["templates"]
        assert [t["id"] for t in listed] == [template["id"]]
        assert client.get(url, {"day_of_week": "x"}).status_code == 400

    def test_duplicate_is_a_conflict(self, staff_client, park):
        url = f"/api/parks/{park.pk}/templates/"
        post_json(staff_client, url, TEMPLATE_PAYLOAD)
        response = post_json(staff_client, url, {**TEMPLATE_PAYLOAD, "days_of_week": [4]})
        assert response.status_code == 409

    def test_closed_weekday_is_a_conflict_with_reason(self, staff_client, park):
        response = post_json(
            staff_client, f"/api/parks/{park.pk}/templates/", {**TEMPLATE_PAYLOAD, "days_of_week": [1]}
        )
        assert response.status_code == 409
        assert "Monday" in response.json()["reason"]

    @pytest.mark.parametrize(
        "payload",
        [
            {**TEMPLATE_PAYLOAD, "start_time": "25:00"},
            {**TEMPLATE_PAYLOAD, "days_of_week": "2,4"},
            {**TEMPLATE_PAYLOAD, "valid_from": None},
            {**TEMPLATE_PAYLOAD, "ticket_limit": 0},
        ],
    )
    def test_invalid_payloads(self, staff_client, park, payload):
        response = post_json(staff_client, f"/api/parks/{park.pk}/templates/", payload)
        assert response.status_code == 400

    def test_malformed_json(self, staff_client, park):
        response = staff_client.post(
            f"/api/parks/{park.pk}/templates/", data="{not json", content_type="application/json"
        )
        assert response.status_code == 400

    def test_check_overlap(self, staff_client, park):
        post_json(staff_client, f"/api/parks/{park.pk}/templates/", TEMPLATE_PAYLOAD)
        response = post_json(
            staff_client,
            f"/api/parks/{park.pk}/templates/check-overlap/",
            {**TEMPLATE_PAYLOAD, "start_time": "11:00", "end_time": "13:00", "days_of_week": [4]},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["has_overlap"] is True
        assert body["conflicts"][0]["time"] == "10:00-12:00"

    def test_update_and_delete(self, staff_client, park):
        created = post_json(staff_client, f"/api/parks/{park.pk}/templates/", TEMPLATE_PAYLOAD).json()["template"]

        response = post_json(
            staff_client, f"/api/templates/{created['id']}/update/", {**TEMPLATE_PAYLOAD, "ticket_limit": 30}
        )
        assert response.status_code == 200
        assert response.json()["template"]["ticket_limit"] == 30

        assert post_json(staff_client, f"/api/templates/{created['id']}/delete/").status_code == 200
        assert not TimeSlotTemplate.objects.exists()
        assert post_json(staff_client, f"/api/templates/{created['id']}/delete/").status_code == 404

    def test_delete_in_use_is_a_conflict(self, staff_client, user_client, park, pricing, upcoming):
        created = post_json(
            staff_client,
            f"/api/parks/{park.pk}/templates/",
            {**TEMPLATE_PAYLOAD, "valid_from": "2024-01-01"},
        ).json()["template"]
        instance = materialize_for_date(park.pk, upcoming("Tuesday"))[0]
        post_json(user_client, "/api/cart/items/", {"instance_id": instance.pk, "pricing_id": pricing.pk, "quantity": 1})

        response = post_json(staff_client, f"/api/templates/{created['id']}/delete/")
        assert response.status_code == 409


@pytest.mark.django_db
class TestCartApi:
    """Cart and booking endpoints."""

    @pytest.fixture
    def slot(self, park, upcoming):
        return materialize_for_date(park.pk, upcoming("Tuesday"))[0]

    def add(self, client, slot, pricing, quantity=2):
        return post_json(
            client,
            "/api/cart/items/",
            {"instance_id": slot.pk, "pricing_id": pricing.pk, "quantity": quantity},
        )

    def test_authentication_required(self, client, slot, pricing):
        assert client.get("/api/cart/").status_code == 401
        assert self.add(client, slot, pricing).status_code == 401

    def test_add_update_remove(self, user_client, slot, pricing):
        response = self.add(user_client, slot, pricing, quantity=2)
        assert response.status_code == 201
        item = response.json()["item"]
        assert (item["quantity"], item["unit_price"], item["total_price"]) == (2, "25.00", "50.00")

        response = post_json(user_client, f"/api/cart/items/{item['id']}/update/", {"quantity": 5})
        assert response.status_code == 200

        cart = user_client.get("/api/cart/").json()["cart"]
        assert cart["total_amount"] == "125.00"
        assert [i["quantity"] for i in cart["items"]] == [5]

        assert post_json(user_client, f"/api/cart/items/{item['id']}/remove/").status_code == 200
        assert user_client.get("/api/cart/").json()["cart"]["items"] == []
        slot.refresh_from_db()
        assert slot.available_tickets == 20

    def test_capacity_exceeded_reports_remaining(self, user_client, slot, pricing):
        response = self.add(user_client, slot, pricing, quantity=25)
        assert response.status_code == 409
        assert response.json()["remaining"] == 20

    @pytest.mark.parametrize("quantity", [0, -2, "3", None])
    def test_invalid_quantity(self, user_client, slot, pricing, quantity):
        assert self.add(user_client, slot, pricing, quantity=quantity).status_code == 400

    def test_unknown_ids(self, user_client, slot, pricing):
        response = post_json(user_client, "/api/cart/items/", {"instance_id": 9999, "pricing_id": pricing.pk, "quantity": 1})
        assert response.status_code == 404
        response = post_json(user_client, "/api/cart/items/", {"instance_id": slot.pk, "pricing_id": 9999, "quantity": 1})
        assert response.status_code == 404
        assert post_json(user_client, "/api/cart/items/9999/remove/").status_code == 404

    def test_checkout_cancel_and_use(self, user_client, staff_client, slot, pricing):
        item_id = self.add(user_client, slot, pricing).json()["item"]["id"]

        assert post_json(user_client, "/api/cart/checkout/", {"payment_method": "bitcoin"}).status_code == 400
        response = post_json(user_client, "/api/cart/checkout/", {"payment_method": "credit_card"})
        assert response.status_code == 200
        booked = response.json()["cart"]["items"][0]
        assert booked["status"] == "confirmed"
        assert booked["ticket_code"]

        assert post_json(user_client, f"/api/bookings/{item_id}/use/").status_code == 403
        assert post_json(staff_client, f"/api/bookings/{item_id}/use/").status_code == 200
        assert post_json(user_client, f"/api/bookings/{item_id}/cancel/").status_code == 400

    def test_cancel_booking(self, user_client, slot, pricing):
        item_id = self.add(user_client, slot, pricing, quantity=3).json()["item"]["id"]
        post_json(user_client, "/api/cart/checkout/", {"payment_method": "paypal"})

        response = post_json(user_client, f"/api/bookings/{item_id}/cancel/")

        assert response.status_code == 200
        assert response.json()["item"]["status"] == CartItem.Status.CANCELLED
        slot.refresh_from_db()
        assert slot.available_tickets == 20

    def test_cancel_someone_elses_booking(self, user_client, slot, pricing, other_user):
        item_id = self.add(user_client, slot, pricing).json()["item"]["id"]
        post_json(user_client, "/api/cart/checkout/", {"payment_method": "paypal"})

        intruder = Client()
        intruder.force_login(other_user)
        assert post_json(intruder, f"/api/bookings/{item_id}/cancel/").status_code == 403

    def test_clear_and_payment_failure(self, user_client, slot, pricing):
        self.add(user_client, slot, pricing, quantity=4)
        assert post_json(user_client, "/api/cart/clear/").json()["released_items"] == 1

        self.add(user_client, slot, pricing, quantity=1)
        response = post_json(user_client, "/api/cart/payment-failed/")
        assert response.status_code == 200
        assert response.json()["released_items"] == 1
        assert post_json(user_client, "/api/cart/payment-failed/").status_code == 400

        slot.refresh_from_db()
        assert slot.available_tickets == 20

    def test_wrong_method(self, user_client):
        assert user_client.get("/api/cart/checkout/").status_code == 405


@pytest.mark.django_db
class TestBookingsApi:
    """Booking history for visitors and per-park booking lists for staff."""

    @pytest.fixture
    def booking_id(self, user_client, park, pricing, upcoming):
        slot = materialize_for_date(park.pk, upcoming("Tuesday"))[0]
        response = post_json(
            user_client,
            "/api/cart/items/",
            {"instance_id": slot.pk, "pricing_id": pricing.pk, "quantity": 2},
        )
        post_json(user_client, "/api/cart/checkout/", {"payment_method": "credit_card"})
        return response.json()["item"]["id"]

    def test_authentication_required(self, client, park):
        assert client.get("/api/bookings/").status_code == 401
        assert client.get(f"/api/parks/{park.pk}/bookings/").status_code == 401

    def test_my_bookings(self, user_client, booking_id):
        response = user_client.get("/api/bookings/")
        assert response.status_code == 200
        bookings = response.json()["bookings"]
        assert [(b["id"], b["status"], b["quantity"]) for b in bookings] == [(booking_id, "confirmed", 2)]
        assert bookings[0]["ticket_code"]

    def test_held_lines_are_not_bookings(self, user_client, park, pricing, upcoming):
        slot = materialize_for_date(park.pk, upcoming("Wednesday"))[0]
        post_json(user_client, "/api/cart/items/", {"instance_id": slot.pk, "pricing_id": pricing.pk, "quantity": 1})
        assert user_client.get("/api/bookings/").json()["bookings"] == []

    def test_booking_detail(self, user_client, staff_client, other_user, booking_id):
        assert user_client.get(f"/api/bookings/{booking_id}/").json()["booking"]["id"] == booking_id
        assert staff_client.get(f"/api/bookings/{booking_id}/").status_code == 200
        assert user_client.get("/api/bookings/9999/").status_code == 404

        intruder = Client()
        intruder.force_login(other_user)
        assert intruder.get(f"/api/bookings/{booking_id}/").status_code == 403

    def test_park_bookings_staff_only(self, user_client, staff_client, park, booking_id, upcoming):
        assert user_client.get(f"/api/parks/{park.pk}/bookings/").status_code == 403

        response = staff_client.get(f"/api/parks/{park.pk}/bookings/")
        assert response.status_code == 200
        bookings = response.json()["bookings"]
        assert [(b["id"], b["user"]) for b in bookings] == [(booking_id, "visitor")]

        other_day = upcoming("Thursday").isoformat()
        assert staff_client.get(f"/api/parks/{park.pk}/bookings/", {"date": other_day}).json()["bookings"] == []
        assert staff_client.get(f"/api/parks/{park.pk}/bookings/", {"date": "09-01-2024"}).status_code == 400
        assert staff_client.get("/api/parks/9999/bookings/").status_code == 404

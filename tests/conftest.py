"""Pytest configuration and shared fixtures."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.test import Client
from django.utils import timezone

from parks.models import Park, Pricing
from scheduling.timeutils import weekday_name


@pytest.fixture
def park(db) -> Park:
    return Park.objects.create(
        name="Canopy Park",
        location="Pine Ridge",
        default_hours={"open": "09:00", "close": "18:00", "closed": False},
        closed_days=["Monday"],
        max_booking_days=30,
    )


@pytest.fixture
def pricing(park) -> Pricing:
    return Pricing.objects.create(park=park, name="Adult", price=Decimal("25.00"))


@pytest.fixture
def child_pricing(park) -> Pricing:
    return Pricing.objects.create(park=park, name="Child", price=Decimal("15.00"))


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="visitor", email="visitor@example.com", password="pass-12345"
    )


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(
        username="someone", email="someone@example.com", password="pass-12345"
    )


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        username="operator", email="operator@example.com", password="pass-12345", is_staff=True
    )


@pytest.fixture
def user_client(user) -> Client:
    client = Client()
    client.force_login(user)
    return client


@pytest.fixture
def staff_client(staff_user) -> Client:
    client = Client()
    client.force_login(staff_user)
    return client


@pytest.fixture
def upcoming():
    """Return the next date (tomorrow at the earliest) falling on a weekday name."""

    def _upcoming(day: str):
        candidate = timezone.localdate() + timedelta(days=1)
        while weekday_name(candidate) != day:
            candidate += timedelta(days=1)
        return candidate

    return _upcoming

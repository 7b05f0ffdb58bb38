import logging
from datetime import date

import pytest

from scheduling import ledger
from scheduling.errors import (
    CapacityExceededError,
    ConcurrencyConflictError,
    InstanceNotFoundError,
    InvalidInputError,
)
from scheduling.models import TimeSlotInstance


@pytest.fixture
def instance(park) -> TimeSlotInstance:
    return TimeSlotInstance.objects.create(
        park=park,
        date=date(2024, 1, 9),
        start_time="10:00",
        end_time="12:00",
        ticket_limit=20,
        available_tickets=20,
    )


def available(instance) -> int:
    instance.refresh_from_db()
    return instance.available_tickets


@pytest.mark.django_db
class TestReserveAndRelease:
    """Conditional counter updates."""

    def test_sequence_of_reservations(self, instance):
        ledger.reserve(instance.pk, 8)
        ledger.reserve(instance.pk, 8)

        with pytest.raises(CapacityExceededError) as exc_info:
            ledger.reserve(instance.pk, 5)
        assert exc_info.value.remaining == 4
        assert available(instance) == 4

        ledger.release(instance.pk, 8)
        result = ledger.reserve(instance.pk, 10)
        assert result.available_tickets == 2
        assert available(instance) == 2

    def test_reserve_then_release_restores_counter(self, instance):
        ledger.reserve(instance.pk, 7)
        ledger.release(instance.pk, 7)
        assert available(instance) == 20

    def test_exact_remaining_capacity_can_be_taken(self, instance):
        result = ledger.reserve(instance.pk, 20)
        assert result.available_tickets == 0
        assert result.is_sold_out

    def test_release_is_clamped_to_ticket_limit(self, instance, caplog):
        ledger.reserve(instance.pk, 3)
        with caplog.at_level(logging.WARNING, logger="scheduling.ledger"):
            result = ledger.release(instance.pk, 10)
        assert result.available_tickets == 20
        assert "clamped" in caplog.text

    def test_more_reservers_than_capacity_never_oversell(self, instance):
        accepted = 0
        for _ in range(25):
            try:
                ledger.reserve(instance.pk, 1)
            except CapacityExceededError:
                continue
            accepted += 1
        assert accepted == 20
        assert available(instance) == 0

    def test_query(self, instance):
        ledger.reserve(instance.pk, 5)
        result = ledger.query(str(instance.pk))
        assert (result.instance_id, result.available_tickets, result.ticket_limit) == (instance.pk, 15, 20)
        assert not result.is_sold_out


@pytest.mark.django_db
class TestLostRaces:
    """A competing reservation lands between the read and the conditional update."""

    def _competitor_before_first_write(self, monkeypatch, taken: int):
        real_read = ledger._read_available
        calls = {"count": 0}

        def read_then_compete(pk):
            value = real_read(pk)
            calls["count"] += 1
            if calls["count"] == 1:
                ledger._conditional_decrement(pk, taken)
            return value

        monkeypatch.setattr(ledger, "_read_available", read_then_compete)
        return calls

    def test_retry_succeeds_when_enough_remains(self, monkeypatch, instance):
        real_decrement = ledger._conditional_decrement
        attempts = []

        def conflict_once(pk, quantity):
            attempts.append(quantity)
            if len(attempts) == 1:
                # Another request took 2 tickets first.
                real_decrement(pk, 2)
                raise ConcurrencyConflictError("lost")
            real_decrement(pk, quantity)

        monkeypatch.setattr(ledger, "_conditional_decrement", conflict_once)

        result = ledger.reserve(instance.pk, 3)

        assert attempts == [3, 3]
        assert result.available_tickets == 15

    def test_stale_read_is_caught_by_conditional_update(self, monkeypatch, instance):
        TimeSlotInstance.objects.filter(pk=instance.pk).update(available_tickets=5)
        calls = self._competitor_before_first_write(monkeypatch, taken=3)

        with pytest.raises(CapacityExceededError) as exc_info:
            ledger.reserve(instance.pk, 3)

        assert calls["count"] == 2
        assert exc_info.value.remaining == 2
        assert available(instance) == 2

    def test_lost_race_for_last_tickets_fails_cleanly(self, monkeypatch, instance):
        TimeSlotInstance.objects.filter(pk=instance.pk).update(available_tickets=5)
        self._competitor_before_first_write(monkeypatch, taken=5)

        with pytest.raises(CapacityExceededError) as exc_info:
            ledger.reserve(instance.pk, 3)

        assert exc_info.value.remaining == 0
        assert available(instance) == 0

    def test_gives_up_after_max_attempts(self, monkeypatch, settings, instance):
        settings.LEDGER_MAX_ATTEMPTS = 2
        attempts = []

        def always_conflict(pk, quantity):
            attempts.append(quantity)
            raise ConcurrencyConflictError("lost")

        monkeypatch.setattr(ledger, "_conditional_decrement", always_conflict)

        with pytest.raises(CapacityExceededError):
            ledger.reserve(instance.pk, 1)
        assert len(attempts) == 2
        assert available(instance) == 20


@pytest.mark.django_db
class TestInputValidation:
    @pytest.mark.parametrize("quantity", [0, -1, True, "2", 1.5])
    def test_invalid_quantity(self, instance, quantity):
        with pytest.raises(InvalidInputError):
            ledger.reserve(instance.pk, quantity)
        with pytest.raises(InvalidInputError):
            ledger.release(instance.pk, quantity)

    def test_unknown_instance(self):
        with pytest.raises(InstanceNotFoundError):
            ledger.reserve(12345, 1)
        with pytest.raises(InstanceNotFoundError):
            ledger.release(12345, 1)
        with pytest.raises(InstanceNotFoundError):
            ledger.query(12345)

    def test_invalid_id(self):
        with pytest.raises(InvalidInputError):
            ledger.query("abc")

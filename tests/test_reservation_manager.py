"""Tests for the reserve / confirm / release / expire lease protocol."""
from __future__ import annotations

from datetime import time

import pytest

from booking.scheduling.ledger import TimeSlotLedger
from booking.scheduling.reservations import ReservationManager
from booking.scheduling.types import Outcome, SlotKey, SlotStatus

from conftest import MONDAY, SUNDAY


@pytest.fixture
def ledger(clock):
    return TimeSlotLedger(clock=clock)


@pytest.fixture
def manager(ledger, catalog, store):
    return ReservationManager(ledger, catalog, store, default_ttl_seconds=600)


def _slot(hour: int, minute: int = 0) -> SlotKey:
    return SlotKey(1, 10, MONDAY, time(hour, minute))


def test_reserve_then_confirm_creates_appointment(manager, ledger, store) -> None:
    reserved = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0))
    assert reserved.outcome is Outcome.RESERVED

    confirmed = manager.confirm(reserved.reservation.reservation_id, {"client_name": "Ana", "pet_name": "Toby"})

    assert confirmed.outcome is Outcome.CONFIRMED
    assert confirmed.appointment_ref == "apt-1"
    booking = store.created[0]
    assert booking.slot_key == _slot(14)
    assert booking.details["pet_name"] == "Toby"
    state = ledger.peek(_slot(14))
    assert state.status is SlotStatus.CONFIRMED
    assert state.appointment_ref == "apt-1"


def test_second_session_gets_slot_unavailable(manager) -> None:
    first = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0))
    second = manager.reserve("session-b", 1, 10, MONDAY, time(14, 0))

    assert first.outcome is Outcome.RESERVED
    assert second.outcome is Outcome.SLOT_UNAVAILABLE
    assert second.reservation is None


def test_reserve_quantizes_requested_time(manager) -> None:
    result = manager.reserve("session-a", 1, 10, MONDAY, time(14, 10))

    assert result.reservation.slot_key == _slot(14)
    assert manager.reserve("session-b", 1, 10, MONDAY, time(13, 50)).outcome is Outcome.SLOT_UNAVAILABLE


def test_reserve_unknown_service(manager) -> None:
    assert manager.reserve("session-a", 1, 99, MONDAY, time(14, 0)).outcome is Outcome.SERVICE_NOT_FOUND
    assert manager.reserve("session-a", 2, 10, MONDAY, time(14, 0)).outcome is Outcome.SERVICE_NOT_FOUND


@pytest.mark.parametrize(
    "day, requested",
    [
        (MONDAY, time(8, 0)),
        (MONDAY, time(17, 50)),
        (MONDAY, time(21, 0)),
        (SUNDAY, time(14, 0)),
    ],
)
def test_reserve_outside_business_hours(manager, day, requested) -> None:
    assert manager.reserve("session-a", 1, 10, day, requested).outcome is Outcome.OUTSIDE_BUSINESS_HOURS


def test_reserve_rejects_slot_overlapping_stored_appointment(manager, store) -> None:
    store.book(1, MONDAY, time(13, 45), 30)

    assert manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).outcome is Outcome.SLOT_UNAVAILABLE
    assert manager.reserve("session-a", 1, 10, MONDAY, time(14, 30)).outcome is Outcome.RESERVED


def test_reserve_uses_tenant_hold_timeout(ledger, catalog, store) -> None:
    catalog.add(tenant_id=3, service_id=30, duration_minutes=30, hold_ttl_seconds=300)
    manager = ReservationManager(ledger, catalog, store, default_ttl_seconds=600)

    custom = manager.reserve("session-a", 3, 30, MONDAY, time(10, 0)).reservation
    default = manager.reserve("session-a", 1, 10, MONDAY, time(10, 0)).reservation

    assert custom.ttl_seconds == 300
    assert default.ttl_seconds == 600


def test_confirm_after_ttl_is_expired_and_slot_can_be_reserved_again(manager, clock) -> None:
    reservation = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).reservation
    clock.advance(600 + 1)

    confirmed = manager.confirm(reservation.reservation_id, {})

    assert confirmed.outcome is Outcome.RESERVATION_EXPIRED
    assert manager.reserve("session-b", 1, 10, MONDAY, time(14, 0)).outcome is Outcome.RESERVED


def test_confirm_unknown_reservation(manager, store) -> None:
    assert manager.confirm("missing", {}).outcome is Outcome.RESERVATION_NOT_FOUND
    assert store.created == []


def test_store_failure_releases_slot_without_relocking(manager, ledger, store) -> None:
    reservation = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).reservation
    store.fail_next = True

    result = manager.confirm(reservation.reservation_id, {})

    assert result.outcome is Outcome.BOOKING_FAILED
    assert ledger.peek(_slot(14)).is_free
    assert manager.confirm(reservation.reservation_id, {}).outcome is Outcome.RESERVATION_NOT_FOUND
    assert manager.reserve("session-b", 1, 10, MONDAY, time(14, 0)).outcome is Outcome.RESERVED


def test_unexpected_store_error_still_frees_slot(manager, ledger, store) -> None:
    reservation = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).reservation

    def broken_store(booking):
        raise RuntimeError("driver crashed")

    store.create_appointment = broken_store
    result = manager.confirm(reservation.reservation_id, {})

    assert result.outcome is Outcome.BOOKING_FAILED
    assert store.created == []
    assert ledger.peek(_slot(14)).is_free
    assert manager.reserve("session-b", 1, 10, MONDAY, time(14, 0)).outcome is Outcome.RESERVED


def test_confirm_after_expire_due_reports_expired(manager, clock) -> None:
    reservation = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).reservation
    clock.advance(601)
    assert manager.expire_due() == 1

    result = manager.confirm(reservation.reservation_id, {})

    assert result.outcome is Outcome.RESERVATION_EXPIRED


def test_release_then_peek_reports_free(manager, ledger) -> None:
    reservation = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).reservation

    assert manager.release(reservation.reservation_id).outcome is Outcome.RELEASED
    assert ledger.peek(_slot(14)).is_free
    assert manager.release(reservation.reservation_id).outcome is Outcome.RESERVATION_NOT_FOUND
    assert manager.confirm(reservation.reservation_id, {}).outcome is Outcome.RESERVATION_NOT_FOUND


def test_confirm_is_restricted_to_owning_session(manager) -> None:
    reservation = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).reservation

    stolen = manager.confirm(reservation.reservation_id, {}, session_id="session-b")
    owned = manager.confirm(reservation.reservation_id, {}, session_id="session-a")

    assert stolen.outcome is Outcome.RESERVATION_NOT_FOUND
    assert owned.outcome is Outcome.CONFIRMED


def test_expire_only_applies_to_lapsed_holds(manager, ledger, clock) -> None:
    reservation = manager.reserve("session-a", 1, 10, MONDAY, time(14, 0)).reservation

    assert manager.expire(reservation.reservation_id).outcome is Outcome.RESERVATION_NOT_FOUND
    clock.advance(600)
    assert manager.expire(reservation.reservation_id).outcome is Outcome.EXPIRED
    assert len(ledger) == 0


def test_expire_due_counts_reclaimed_holds(manager, clock) -> None:
    manager.reserve("session-a", 1, 10, MONDAY, time(9, 0))
    manager.reserve("session-b", 1, 10, MONDAY, time(9, 30))
    clock.advance(601)
    manager.reserve("session-c", 1, 10, MONDAY, time(10, 0))

    assert manager.expire_due() == 2
    assert manager.expire_due() == 0

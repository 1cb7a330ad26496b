"""Lease protocol used by the booking wizard.

A reservation moves ``Held -> Confirmed | Released | Expired`` and never
leaves a terminal state. The manager validates requests against the
service catalog and delegates every state change to the ledger.
"""
from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional

from . import grid
from .collaborators import AppointmentStore, ServiceCatalog
from .ledger import TimeSlotLedger
from .types import BookingRequest, BookingResult, LedgerStatus, Outcome, SlotKey

logger = logging.getLogger(__name__)

DEFAULT_HOLD_TTL_SECONDS = 600


class ReservationManager:
    def __init__(
        self,
        ledger: TimeSlotLedger,
        catalog: ServiceCatalog,
        store: AppointmentStore,
        default_ttl_seconds: int = DEFAULT_HOLD_TTL_SECONDS,
    ) -> None:
        self.ledger = ledger
        self.catalog = catalog
        self.store = store
        self.default_ttl_seconds = default_ttl_seconds

    def reserve(
        self,
        session_id: str,
        tenant_id: int,
        service_id: int,
        day: date,
        requested: time,
    ) -> BookingResult:
        service = self.catalog.get_service(tenant_id, service_id)
        if service is None:
            return BookingResult(Outcome.SERVICE_NOT_FOUND)

        window = service.business_hours.window_for(day)
        if window is None:
            return BookingResult(Outcome.OUTSIDE_BUSINESS_HOURS)

        open_time, close_time = window
        slot_time = grid.quantize(requested, open_time, service.step_minutes)
        start = grid.to_minutes(slot_time)
        if start < grid.to_minutes(open_time) or start + service.duration_minutes > grid.to_minutes(close_time):
            return BookingResult(Outcome.OUTSIDE_BUSINESS_HOURS)

        # Appointments booked outside this process are only known to the store.
        booked = self.store.list_confirmed_slots(tenant_id, day)
        if grid.overlaps_any(slot_time, service.duration_minutes, booked):
            logger.info("Slot %s %s for service %s already booked", day, slot_time, service_id)
            return BookingResult(Outcome.SLOT_UNAVAILABLE)

        key = SlotKey(tenant_id, service_id, day, slot_time)
        ttl = service.hold_ttl_seconds or self.default_ttl_seconds
        result = self.ledger.try_hold(key, session_id, ttl)
        if result.status is not LedgerStatus.OK:
            logger.info("Slot %s is held or confirmed, session %s turned away", key, session_id)
            return BookingResult(Outcome.SLOT_UNAVAILABLE)

        logger.info(
            "Reservation %s holds %s for session %s (ttl=%ss)",
            result.reservation.reservation_id, key, session_id, ttl,
        )
        return BookingResult(Outcome.RESERVED, reservation=result.reservation)

    def confirm(
        self,
        reservation_id: str,
        booking_details: Optional[dict] = None,
        session_id: Optional[str] = None,
    ) -> BookingResult:
        result = self.ledger.confirm(reservation_id, session_id=session_id)
        if result.status is LedgerStatus.NOT_FOUND:
            logger.info("Confirm for unknown or finished reservation %s", reservation_id)
            return BookingResult(Outcome.RESERVATION_NOT_FOUND)
        if result.status is LedgerStatus.EXPIRED:
            logger.info("Confirm for lapsed reservation %s", reservation_id)
            return BookingResult(Outcome.RESERVATION_EXPIRED, reservation=result.reservation)

        reservation = result.reservation
        key = reservation.slot_key
        booking = BookingRequest(
            reservation_id=reservation.reservation_id,
            session_id=reservation.session_id,
            slot_key=key,
            details=dict(booking_details or {}),
        )

        # No ledger lock is held during the store write. A confirmed slot never
        # outlives a failed write, whatever the store raised.
        try:
            appointment_ref = self.store.create_appointment(booking)
        except Exception:
            logger.exception(
                "Appointment write failed for reservation %s, releasing %s", reservation_id, key
            )
            self.ledger.vacate(key)
            return BookingResult(Outcome.BOOKING_FAILED, reservation=reservation)

        self.ledger.settle(key, appointment_ref)
        logger.info("Reservation %s confirmed as appointment %s", reservation_id, appointment_ref)
        return BookingResult(Outcome.CONFIRMED, reservation=reservation, appointment_ref=appointment_ref)

    def release(self, reservation_id: str, session_id: Optional[str] = None) -> BookingResult:
        result = self.ledger.release(reservation_id, session_id=session_id)
        if result.status is not LedgerStatus.OK:
            return BookingResult(Outcome.RESERVATION_NOT_FOUND)
        logger.info("Reservation %s released by session %s", reservation_id, result.reservation.session_id)
        return BookingResult(Outcome.RELEASED, reservation=result.reservation)

    def expire(self, reservation_id: str) -> BookingResult:
        result = self.ledger.expire(reservation_id)
        if result.status is not LedgerStatus.OK:
            return BookingResult(Outcome.RESERVATION_NOT_FOUND)
        logger.info(
            "Reservation %s expired, %s is free again", reservation_id, result.reservation.slot_key
        )
        return BookingResult(Outcome.EXPIRED, reservation=result.reservation)

    def expire_due(self) -> int:
        expired = 0
        for reservation_id in self.ledger.expired_ids():
            if self.expire(reservation_id).outcome is Outcome.EXPIRED:
                expired += 1
        return expired

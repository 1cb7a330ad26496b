"""Wiring of the slot engine and the surface the booking flow talks to."""
from __future__ import annotations

from datetime import date, time
from typing import List, Optional

from flask import Flask, current_app

from .availability import AvailabilityResolver
from .collaborators import AppointmentStore, ServiceCatalog
from .ledger import Clock, TimeSlotLedger
from .reservations import ReservationManager
from .sweeper import ExpirySweeper
from .types import AvailabilityQuery, AvailabilityResult, BookingResult, Outcome, Reservation

EXTENSION_KEY = "booking_engine"


class BookingEngine:
    """Entry points used by the booking wizard."""

    def __init__(
        self,
        catalog: ServiceCatalog,
        store: AppointmentStore,
        clock: Optional[Clock] = None,
        hold_ttl_seconds: int = 600,
        max_alternatives: int = 6,
        sweep_interval_seconds: float = 30,
    ) -> None:
        self.ledger = TimeSlotLedger(clock=clock)
        self.manager = ReservationManager(self.ledger, catalog, store, default_ttl_seconds=hold_ttl_seconds)
        self.resolver = AvailabilityResolver(self.ledger, catalog, store, max_alternatives=max_alternatives)
        self.sweeper = ExpirySweeper(self.manager, interval_seconds=sweep_interval_seconds)

    def check_availability(self, tenant_id: int, service_id: int, day: date, requested: time) -> AvailabilityResult:
        return self.resolver.check(AvailabilityQuery(tenant_id, service_id, day, requested))

    def available_slots(self, tenant_id: int, service_id: int, day: date) -> Optional[List[time]]:
        return self.resolver.available_slots(tenant_id, service_id, day)

    def reserve_slot(
        self, session_id: str, tenant_id: int, service_id: int, day: date, requested: time
    ) -> BookingResult:
        result = self.manager.reserve(session_id, tenant_id, service_id, day, requested)
        if result.outcome is Outcome.SLOT_UNAVAILABLE:
            # A taken slot always comes back with somewhere else to go.
            availability = self.check_availability(tenant_id, service_id, day, requested)
            return BookingResult(Outcome.SLOT_UNAVAILABLE, alternatives=availability.alternatives)
        return result

    def confirm_reservation(
        self, reservation_id: str, booking_details: Optional[dict] = None, session_id: Optional[str] = None
    ) -> BookingResult:
        return self.manager.confirm(reservation_id, booking_details, session_id=session_id)

    def release_reservation(self, reservation_id: str, session_id: Optional[str] = None) -> BookingResult:
        return self.manager.release(reservation_id, session_id=session_id)

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self.ledger.get(reservation_id)

    def active_holds(self, tenant_id: int, day: date) -> List[Reservation]:
        return self.ledger.active_holds(tenant_id, day)

    def cleanup(self) -> int:
        return self.manager.expire_due()

    def now(self) -> float:
        return self.ledger.now()


def init_engine(app: Flask, catalog: ServiceCatalog, store: AppointmentStore) -> BookingEngine:
    engine = BookingEngine(
        catalog,
        store,
        clock=app.config.get("BOOKING_CLOCK"),
        hold_ttl_seconds=app.config.get("HOLD_TTL_SECONDS", 600),
        max_alternatives=app.config.get("MAX_ALTERNATIVES", 6),
        sweep_interval_seconds=app.config.get("SWEEP_INTERVAL_SECONDS", 30),
    )
    app.extensions[EXTENSION_KEY] = engine
    if app.config.get("SWEEPER_ENABLED", True):
        engine.sweeper.start()
    return engine


def get_engine(app: Optional[Flask] = None) -> BookingEngine:
    app = app or current_app
    return app.extensions[EXTENSION_KEY]

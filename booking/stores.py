"""SQLAlchemy-backed service catalog and appointment store."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import Appointment, Service, Tenant
from .scheduling.collaborators import AppointmentStoreError
from .scheduling.types import BookingRequest, BusinessHours, ConfirmedSlot, ServiceInfo


def business_hours_for(tenant: Tenant) -> BusinessHours:
    return BusinessHours(
        open_time=tenant.open_time,
        close_time=tenant.close_time,
        closed_weekdays=frozenset(tenant.closed_weekdays or ()),
    )


class SqlServiceCatalog:
    def get_service(self, tenant_id: int, service_id: int) -> Optional[ServiceInfo]:
        service = db.session.get(Service, service_id)
        if service is None or service.tenant_id != tenant_id or not service.is_active:
            return None

        tenant = service.tenant
        timeout = tenant.reservation_timeout_minutes
        return ServiceInfo(
            tenant_id=tenant.tenant_id,
            service_id=service.service_id,
            duration_minutes=service.duration_minutes,
            business_hours=business_hours_for(tenant),
            slot_minutes=tenant.time_slot_minutes or current_app.config.get("DEFAULT_SLOT_MINUTES"),
            hold_ttl_seconds=timeout * 60 if timeout else None,
        )


class SqlAppointmentStore:
    def create_appointment(self, booking: BookingRequest) -> str:
        details = booking.details
        key = booking.slot_key
        try:
            service = db.session.get(Service, key.service_id)
        except SQLAlchemyError as exc:
            raise AppointmentStoreError(f"Could not load service {key.service_id}: {exc}") from exc
        if service is None:
            raise AppointmentStoreError(f"Service {key.service_id} no longer exists")

        appointment = Appointment(
            tenant_id=key.tenant_id,
            service_id=key.service_id,
            scheduled_date=key.date,
            scheduled_time=key.time,
            duration_minutes=service.duration_minutes,
            client_name=details.get("client_name"),
            client_phone=details.get("client_phone"),
            pet_name=details.get("pet_name"),
            notes=details.get("notes"),
            reservation_id=booking.reservation_id,
            session_id=booking.session_id,
            status="booked",
        )
        try:
            db.session.add(appointment)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise AppointmentStoreError(f"Could not create appointment: {exc}") from exc
        return str(appointment.appointment_id)

    def list_confirmed_slots(self, tenant_id: int, day: date) -> List[ConfirmedSlot]:
        rows = (
            Appointment.query.with_entities(Appointment.scheduled_time, Appointment.duration_minutes)
            .filter(
                Appointment.tenant_id == tenant_id,
                Appointment.scheduled_date == day,
                Appointment.status != "cancelled",
            )
            .order_by(Appointment.scheduled_time)
            .all()
        )
        return [ConfirmedSlot(time=row.scheduled_time, duration_minutes=row.duration_minutes) for row in rows]

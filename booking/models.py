"""Database models backing the service catalog and the appointment store."""
from __future__ import annotations

from datetime import datetime, time, timezone

from .extensions import db


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Tenant(db.Model):
    """A site (clinic / grooming salon) with its own business hours."""

    __tablename__ = "tenants"

    tenant_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    open_time = db.Column(db.Time, nullable=False, default=time(9, 0))
    close_time = db.Column(db.Time, nullable=False, default=time(18, 0))
    # 0=Monday ... 6=Sunday, same as date.weekday()
    closed_weekdays = db.Column(db.JSON, nullable=True, default=list)
    time_slot_minutes = db.Column(db.Integer, nullable=True)
    reservation_timeout_minutes = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    services = db.relationship("Service", back_populates="tenant", lazy="dynamic")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.tenant_id,
            "name": self.name,
            "open_time": self.open_time.strftime("%H:%M") if self.open_time else None,
            "close_time": self.close_time.strftime("%H:%M") if self.close_time else None,
            "closed_weekdays": self.closed_weekdays or [],
            "time_slot_minutes": self.time_slot_minutes,
            "reservation_timeout_minutes": self.reservation_timeout_minutes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Service(db.Model):
    """Bookable services offered by a tenant."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.tenant_id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    duration_minutes = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    tenant = db.relationship("Tenant", back_populates="services")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "duration_minutes": self.duration_minutes,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Appointment(db.Model):
    """Confirmed appointments written when a reservation is confirmed."""

    __tablename__ = "appointments"

    appointment_id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.tenant_id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    scheduled_date = db.Column(db.Date, nullable=False, index=True)
    scheduled_time = db.Column(db.Time, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    client_name = db.Column(db.String(150))
    client_phone = db.Column(db.String(30))
    pet_name = db.Column(db.String(100))
    notes = db.Column(db.Text)
    reservation_id = db.Column(db.String(64), unique=True)
    session_id = db.Column(db.String(128))
    status = db.Column(
        db.Enum(
            "booked",
            "completed",
            "cancelled",
            "no-show",
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="booked",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    tenant = db.relationship("Tenant")
    service = db.relationship("Service")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "tenant_id": self.tenant_id,
            "service_id": self.service_id,
            "service": {
                "id": self.service.service_id,
                "name": self.service.name,
                "duration_minutes": self.service.duration_minutes,
            } if self.service else None,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_time": self.scheduled_time.strftime("%H:%M") if self.scheduled_time else None,
            "duration_minutes": self.duration_minutes,
            "client_name": self.client_name,
            "client_phone": self.client_phone,
            "pet_name": self.pet_name,
            "notes": self.notes,
            "reservation_id": self.reservation_id,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

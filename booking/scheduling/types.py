"""Value types shared by the ledger, the reservation manager and the resolver."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import NamedTuple, Optional


@dataclass(frozen=True, order=True)
class SlotKey:
    """Identity of a bookable slot; the time is already quantized to the grid."""

    tenant_id: int
    service_id: int
    date: date
    time: time

    def to_dict(self) -> dict[str, object]:
        return {
            "tenant_id": self.tenant_id,
            "service_id": self.service_id,
            "date": self.date.isoformat(),
            "time": self.time.strftime("%H:%M"),
        }


@dataclass(frozen=True)
class Reservation:
    """A lease on one slot, owned by the session that created it.

    ``created_at`` and ``expires_at`` are readings of the ledger's monotonic
    clock. ``issued_at`` is the wall-clock creation time, only used to show
    an absolute expiry to callers.
    """

    reservation_id: str
    session_id: str
    slot_key: SlotKey
    created_at: float
    expires_at: float
    issued_at: datetime

    @property
    def ttl_seconds(self) -> float:
        return self.expires_at - self.created_at

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)

    def to_dict(self, now: Optional[float] = None) -> dict[str, object]:
        data: dict[str, object] = {
            "reservation_id": self.reservation_id,
            "session_id": self.session_id,
            "slot": self.slot_key.to_dict(),
            "created_at": self.issued_at.isoformat(),
            "expires_at": (self.issued_at + timedelta(seconds=self.ttl_seconds)).isoformat(),
            "ttl_seconds": int(self.ttl_seconds),
        }
        if now is not None:
            data["expires_in_seconds"] = int(self.remaining(now))
        return data


class SlotStatus(str, Enum):
    FREE = "free"
    HELD = "held"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class SlotState:
    status: SlotStatus
    reservation: Optional[Reservation] = None
    # None while the appointment write for a confirmed slot is in flight.
    appointment_ref: Optional[str] = None

    @classmethod
    def free(cls) -> "SlotState":
        return cls(SlotStatus.FREE)

    @classmethod
    def held(cls, reservation: Reservation) -> "SlotState":
        return cls(SlotStatus.HELD, reservation=reservation)

    @classmethod
    def confirmed(cls, appointment_ref: Optional[str] = None) -> "SlotState":
        return cls(SlotStatus.CONFIRMED, appointment_ref=appointment_ref)

    @property
    def is_free(self) -> bool:
        return self.status is SlotStatus.FREE


class LedgerStatus(str, Enum):
    OK = "ok"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"


class LedgerResult(NamedTuple):
    status: LedgerStatus
    reservation: Optional[Reservation] = None


class Outcome(str, Enum):
    """Expected results of the booking-flow operations."""

    RESERVED = "reserved"
    SLOT_UNAVAILABLE = "slot_unavailable"
    SERVICE_NOT_FOUND = "service_not_found"
    OUTSIDE_BUSINESS_HOURS = "outside_business_hours"
    CONFIRMED = "confirmed"
    RESERVATION_EXPIRED = "reservation_expired"
    RESERVATION_NOT_FOUND = "reservation_not_found"
    BOOKING_FAILED = "booking_failed"
    RELEASED = "released"
    EXPIRED = "expired"


@dataclass(frozen=True)
class BookingResult:
    outcome: Outcome
    reservation: Optional[Reservation] = None
    appointment_ref: Optional[str] = None
    alternatives: tuple[time, ...] = ()

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.RESERVED, Outcome.CONFIRMED, Outcome.RELEASED, Outcome.EXPIRED)


@dataclass(frozen=True)
class AvailabilityQuery:
    tenant_id: int
    service_id: int
    date: date
    requested_time: time


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    alternatives: tuple[time, ...] = ()
    requested_time: Optional[time] = None
    # Why the requested slot cannot be booked: "busy", "closed",
    # "outside_business_hours" or "service_not_found".
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "available": self.available,
            "requested_time": self.requested_time.strftime("%H:%M") if self.requested_time else None,
            "alternatives": [t.strftime("%H:%M") for t in self.alternatives],
            "reason": self.reason,
        }


@dataclass(frozen=True)
class BusinessHours:
    open_time: time
    close_time: time
    closed_weekdays: frozenset[int] = field(default_factory=frozenset)

    def window_for(self, day: date) -> Optional[tuple[time, time]]:
        """Opening window for ``day``, or None when the tenant is closed."""
        if day.weekday() in self.closed_weekdays:
            return None
        if self.close_time <= self.open_time:
            return None
        return self.open_time, self.close_time


@dataclass(frozen=True)
class ServiceInfo:
    """What the service catalog knows about one bookable service."""

    tenant_id: int
    service_id: int
    duration_minutes: int
    business_hours: BusinessHours
    slot_minutes: Optional[int] = None
    hold_ttl_seconds: Optional[int] = None

    @property
    def step_minutes(self) -> int:
        return self.slot_minutes or self.duration_minutes


@dataclass(frozen=True)
class ConfirmedSlot:
    time: time
    duration_minutes: int


@dataclass(frozen=True)
class BookingRequest:
    """Everything the appointment store needs to persist a confirmed booking."""

    reservation_id: str
    session_id: str
    slot_key: SlotKey
    details: dict[str, object] = field(default_factory=dict)

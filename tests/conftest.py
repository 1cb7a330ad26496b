"""pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from datetime import date, time
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the app package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from booking import create_app  # noqa: E402
from booking.extensions import db  # noqa: E402
from booking.models import Service, Tenant  # noqa: E402
from booking.scheduling.collaborators import AppointmentStoreError  # noqa: E402
from booking.scheduling.types import BusinessHours, ConfirmedSlot, ServiceInfo  # noqa: E402

# 2030-01-07 is a Monday.
MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog:
    def __init__(self) -> None:
        self.services: dict[tuple[int, int], ServiceInfo] = {}

    def add(self, tenant_id: int, service_id: int, duration_minutes: int = 30, **kwargs) -> ServiceInfo:
        hours = kwargs.pop(
            "business_hours",
            BusinessHours(time(9, 0), time(18, 0), frozenset({6})),
        )
        info = ServiceInfo(tenant_id, service_id, duration_minutes, hours, **kwargs)
        self.services[(tenant_id, service_id)] = info
        return info

    def get_service(self, tenant_id: int, service_id: int):
        return self.services.get((tenant_id, service_id))


class FakeAppointmentStore:
    def __init__(self) -> None:
        self.booked: dict[tuple[int, date], list[ConfirmedSlot]] = {}
        self.created = []
        self.fail_next = False

    def book(self, tenant_id: int, day: date, start: time, duration_minutes: int) -> None:
        self.booked.setdefault((tenant_id, day), []).append(ConfirmedSlot(start, duration_minutes))

    def create_appointment(self, booking) -> str:
        if self.fail_next:
            self.fail_next = False
            raise AppointmentStoreError("store unavailable")
        self.created.append(booking)
        return f"apt-{len(self.created)}"

    def list_confirmed_slots(self, tenant_id: int, day: date):
        return list(self.booked.get((tenant_id, day), []))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    catalog = FakeCatalog()
    catalog.add(tenant_id=1, service_id=10, duration_minutes=30)
    return catalog


@pytest.fixture
def store():
    return FakeAppointmentStore()


@pytest.fixture
def app(clock):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SWEEPER_ENABLED": False,
        "HOLD_TTL_SECONDS": 600,
        "BOOKING_CLOCK": clock,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def setup_tenant(app):
    tenant = Tenant(
        tenant_id=1,
        name="VetGroom Centro",
        open_time=time(9, 0),
        close_time=time(18, 0),
        closed_weekdays=[6],
        time_slot_minutes=30,
    )
    grooming = Service(service_id=10, tenant_id=1, name="Baño sencillo", duration_minutes=30)
    full_groom = Service(service_id=11, tenant_id=1, name="Baño y corte", duration_minutes=60)
    db.session.add_all([tenant, grooming, full_groom])
    db.session.commit()
    return tenant.tenant_id

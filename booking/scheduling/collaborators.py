"""Interfaces of the systems the engine reads from and writes to."""
from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol

from .types import BookingRequest, ConfirmedSlot, ServiceInfo


class AppointmentStoreError(Exception):
    """The appointment store could not persist or read appointments."""


class ServiceCatalog(Protocol):
    def get_service(self, tenant_id: int, service_id: int) -> Optional[ServiceInfo]:
        ...


class AppointmentStore(Protocol):
    def create_appointment(self, booking: BookingRequest) -> str:
        """Persist ``booking`` and return its reference; raise AppointmentStoreError on failure."""
        ...

    def list_confirmed_slots(self, tenant_id: int, day: date) -> List[ConfirmedSlot]:
        ...

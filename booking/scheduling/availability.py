"""Read-only availability checks.

Nothing in this module writes to the ledger: checking a slot never takes,
renews or expires a hold, so the wizard can re-check as often as it likes.
"""
from __future__ import annotations

from datetime import date, time
from typing import List, Optional, Tuple

from . import grid
from .collaborators import AppointmentStore, ServiceCatalog
from .ledger import TimeSlotLedger
from .types import AvailabilityQuery, AvailabilityResult, ServiceInfo, SlotKey

DEFAULT_MAX_ALTERNATIVES = 6


class AvailabilityResolver:
    def __init__(
        self,
        ledger: TimeSlotLedger,
        catalog: ServiceCatalog,
        store: AppointmentStore,
        max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
    ) -> None:
        self.ledger = ledger
        self.catalog = catalog
        self.store = store
        self.max_alternatives = max_alternatives

    def _grid(self, service: ServiceInfo, day: date) -> Optional[Tuple[time, List[time]]]:
        window = service.business_hours.window_for(day)
        if window is None:
            return None
        open_time, close_time = window
        return open_time, grid.candidate_times(
            open_time, close_time, service.step_minutes, service.duration_minutes
        )

    def _free_times(self, service: ServiceInfo, day: date, candidates: List[time]) -> List[time]:
        booked = self.store.list_confirmed_slots(service.tenant_id, day)
        free = []
        for candidate in candidates:
            key = SlotKey(service.tenant_id, service.service_id, day, candidate)
            if not self.ledger.peek(key).is_free:
                continue
            if grid.overlaps_any(candidate, service.duration_minutes, booked):
                continue
            free.append(candidate)
        return free

    def check(self, query: AvailabilityQuery) -> AvailabilityResult:
        service = self.catalog.get_service(query.tenant_id, query.service_id)
        if service is None:
            return AvailabilityResult(False, reason="service_not_found")

        day_grid = self._grid(service, query.date)
        if day_grid is None:
            return AvailabilityResult(False, reason="closed")
        open_time, candidates = day_grid

        requested = grid.quantize(query.requested_time, open_time, service.step_minutes)
        free = self._free_times(service, query.date, candidates)

        if requested in free:
            return AvailabilityResult(True, requested_time=requested)

        reason = "busy" if requested in candidates else "outside_business_hours"
        alternatives = grid.rank_by_distance(requested, free, self.max_alternatives)
        return AvailabilityResult(
            False,
            alternatives=tuple(alternatives),
            requested_time=requested,
            reason=reason,
        )

    def available_slots(self, tenant_id: int, service_id: int, day: date) -> Optional[List[time]]:
        """Every free slot of the day in chronological order; None for an unknown service."""
        service = self.catalog.get_service(tenant_id, service_id)
        if service is None:
            return None
        day_grid = self._grid(service, day)
        if day_grid is None:
            return []
        return self._free_times(service, day, day_grid[1])

"""In-process record of slot occupancy.

The ledger is the only component allowed to change slot state. Every write
runs under a lock dedicated to its SlotKey, so two sessions racing for the
same slot are serialised while unrelated slots never wait on each other.
A small guard lock protects the shared dictionaries themselves; it is only
held for dictionary reads and writes, never while waiting on a key.
"""
from __future__ import annotations

import logging
import threading
import time as _time
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

from .types import LedgerResult, LedgerStatus, Reservation, SlotKey, SlotState, SlotStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class TimeSlotLedger:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or _time.monotonic
        self._guard = threading.Lock()
        self._key_locks: Dict[SlotKey, _KeyLock] = {}
        self._slots: Dict[SlotKey, SlotState] = {}
        self._by_id: Dict[str, SlotKey] = {}
        # Leases dropped because their TTL ran out, kept for one more TTL so a
        # late confirm is still told the hold expired.
        self._lapsed: Dict[str, Reservation] = {}

    def now(self) -> float:
        return self._clock()

    @contextmanager
    def _locked(self, key: SlotKey) -> Iterator[None]:
        # Key locks only live while someone uses them, so the table does not
        # grow with every slot ever touched.
        with self._guard:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyLock()
            entry.users += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._key_locks[key]

    def _state(self, key: SlotKey) -> Optional[SlotState]:
        with self._guard:
            return self._slots.get(key)

    def _put(self, key: SlotKey, state: SlotState) -> None:
        with self._guard:
            self._slots[key] = state
            if state.reservation is not None:
                self._by_id[state.reservation.reservation_id] = key

    def _drop(self, key: SlotKey) -> Optional[SlotState]:
        with self._guard:
            state = self._slots.pop(key, None)
            if state is not None and state.reservation is not None:
                self._by_id.pop(state.reservation.reservation_id, None)
            return state

    def _key_for(self, reservation_id: str) -> Optional[SlotKey]:
        with self._guard:
            return self._by_id.get(reservation_id)

    def _bury(self, reservation: Reservation) -> None:
        with self._guard:
            self._lapsed[reservation.reservation_id] = reservation

    def _lapsed_result(self, reservation_id: str, session_id: Optional[str]) -> LedgerResult:
        with self._guard:
            reservation = self._lapsed.get(reservation_id)
        if reservation is None or (session_id is not None and reservation.session_id != session_id):
            return LedgerResult(LedgerStatus.NOT_FOUND)
        return LedgerResult(LedgerStatus.EXPIRED, reservation)

    def _forget_lapsed(self) -> None:
        now = self._clock()
        with self._guard:
            stale = [
                reservation_id for reservation_id, reservation in self._lapsed.items()
                if now >= reservation.expires_at + reservation.ttl_seconds
            ]
            for reservation_id in stale:
                del self._lapsed[reservation_id]

    def _held(self, key: SlotKey, reservation_id: str) -> Optional[Reservation]:
        """The live-or-expired hold on ``key`` if it belongs to ``reservation_id``."""
        state = self._state(key)
        if state is None or state.status is not SlotStatus.HELD:
            return None
        if state.reservation.reservation_id != reservation_id:
            return None
        return state.reservation

    # Writes

    def try_hold(self, key: SlotKey, session_id: str, ttl: float) -> LedgerResult:
        """Claim ``key`` for ``session_id`` if it is free or its hold has lapsed."""
        with self._locked(key):
            now = self._clock()
            state = self._state(key)
            if state is not None:
                if state.status is SlotStatus.CONFIRMED:
                    return LedgerResult(LedgerStatus.CONFLICT)
                if not state.reservation.is_expired(now):
                    return LedgerResult(LedgerStatus.CONFLICT)
                logger.info(
                    "Reclaiming lapsed hold %s on %s", state.reservation.reservation_id, key
                )
                self._drop(key)
                self._bury(state.reservation)

            reservation = Reservation(
                reservation_id=uuid.uuid4().hex,
                session_id=session_id,
                slot_key=key,
                created_at=now,
                expires_at=now + ttl,
                issued_at=datetime.now(timezone.utc),
            )
            self._put(key, SlotState.held(reservation))
            return LedgerResult(LedgerStatus.OK, reservation)

    def confirm(self, reservation_id: str, session_id: Optional[str] = None) -> LedgerResult:
        """Turn a live hold into a confirmed slot.

        The slot stays confirmed (with no appointment reference yet) until the
        caller either ``settle``s or ``vacate``s it. A hold whose TTL ran out is
        reported as EXPIRED, even after the sweeper removed it, for one more
        TTL; any other id without a hold is NOT_FOUND.
        """
        key = self._key_for(reservation_id)
        if key is None:
            return self._lapsed_result(reservation_id, session_id)

        with self._locked(key):
            reservation = self._held(key, reservation_id)
            if reservation is None:
                return self._lapsed_result(reservation_id, session_id)
            if session_id is not None and reservation.session_id != session_id:
                return LedgerResult(LedgerStatus.NOT_FOUND)
            if reservation.is_expired(self._clock()):
                self._drop(key)
                self._bury(reservation)
                return LedgerResult(LedgerStatus.EXPIRED, reservation)

            self._drop(key)
            self._put(key, SlotState.confirmed())
            return LedgerResult(LedgerStatus.OK, reservation)

    def release(self, reservation_id: str, session_id: Optional[str] = None) -> LedgerResult:
        """Drop a hold; releasing an unknown or finished reservation is a no-op."""
        key = self._key_for(reservation_id)
        if key is None:
            return LedgerResult(LedgerStatus.NOT_FOUND)

        with self._locked(key):
            reservation = self._held(key, reservation_id)
            if reservation is None:
                return LedgerResult(LedgerStatus.NOT_FOUND)
            if session_id is not None and reservation.session_id != session_id:
                return LedgerResult(LedgerStatus.NOT_FOUND)
            self._drop(key)
            if reservation.is_expired(self._clock()):
                self._bury(reservation)
                # Lazily expired leases are already absent for every reader.
                return LedgerResult(LedgerStatus.NOT_FOUND)
            return LedgerResult(LedgerStatus.OK, reservation)

    def expire(self, reservation_id: str) -> LedgerResult:
        """Remove a hold whose TTL has elapsed; live holds are left alone."""
        key = self._key_for(reservation_id)
        if key is None:
            return LedgerResult(LedgerStatus.NOT_FOUND)

        with self._locked(key):
            reservation = self._held(key, reservation_id)
            if reservation is None or not reservation.is_expired(self._clock()):
                return LedgerResult(LedgerStatus.NOT_FOUND)
            self._drop(key)
            self._bury(reservation)
            return LedgerResult(LedgerStatus.OK, reservation)

    def settle(self, key: SlotKey, appointment_ref: str) -> None:
        with self._locked(key):
            state = self._state(key)
            if state is not None and state.status is SlotStatus.CONFIRMED:
                self._put(key, SlotState.confirmed(appointment_ref))

    def vacate(self, key: SlotKey) -> None:
        """Free a confirmed slot whose appointment could not be written."""
        with self._locked(key):
            state = self._state(key)
            if state is not None and state.status is SlotStatus.CONFIRMED:
                self._drop(key)

    def sweep_expired(self) -> int:
        self._forget_lapsed()
        removed = 0
        for reservation_id in self.expired_ids():
            if self.expire(reservation_id).status is LedgerStatus.OK:
                removed += 1
        if removed:
            logger.info("sweep_expired: removed %s lapsed holds", removed)
        return removed

    def prune_confirmed(self, before: date) -> int:
        """Forget confirmed markers for past days; the appointment store owns them."""
        self._forget_lapsed()
        with self._guard:
            stale = [
                key for key, state in self._slots.items()
                if state.status is SlotStatus.CONFIRMED and key.date < before
            ]
        pruned = 0
        for key in stale:
            with self._locked(key):
                state = self._state(key)
                if state is not None and state.status is SlotStatus.CONFIRMED:
                    self._drop(key)
                    pruned += 1
        return pruned

    # Reads

    def peek(self, key: SlotKey) -> SlotState:
        state = self._state(key)
        if state is None:
            return SlotState.free()
        if state.status is SlotStatus.HELD and state.reservation.is_expired(self._clock()):
            return SlotState.free()
        return state

    def get(self, reservation_id: str) -> Optional[Reservation]:
        """The live reservation with this id, or None."""
        key = self._key_for(reservation_id)
        if key is None:
            return None
        reservation = self._held(key, reservation_id)
        if reservation is None or reservation.is_expired(self._clock()):
            return None
        return reservation

    def expired_ids(self) -> List[str]:
        now = self._clock()
        with self._guard:
            return [
                state.reservation.reservation_id
                for state in self._slots.values()
                if state.status is SlotStatus.HELD and state.reservation.is_expired(now)
            ]

    def active_holds(self, tenant_id: int, day: date) -> List[Reservation]:
        now = self._clock()
        with self._guard:
            holds = [
                state.reservation
                for key, state in self._slots.items()
                if key.tenant_id == tenant_id
                and key.date == day
                and state.status is SlotStatus.HELD
                and not state.reservation.is_expired(now)
            ]
        return sorted(holds, key=lambda r: (r.slot_key.time, r.slot_key.service_id))

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)

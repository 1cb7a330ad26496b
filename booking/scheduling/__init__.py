"""
Slot reservation engine

- Slot occupancy ledger with per-slot locking (ledger.py)
- Lease protocol for the booking wizard (reservations.py)
- Availability checks and alternative slots (availability.py)
- Active expiry of abandoned holds (sweeper.py)
"""
from .engine import BookingEngine, get_engine, init_engine

__all__ = ["BookingEngine", "get_engine", "init_engine"]

"""Slot grid arithmetic.

Times are handled as minutes since midnight so the grid can be stepped and
compared without building datetimes for every candidate.
"""
from __future__ import annotations

from datetime import time
from typing import Iterable, List


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def quantize(value: time, open_time: time, step_minutes: int) -> time:
    """Round ``value`` to the nearest grid boundary counted from ``open_time``.

    Ties go to the earlier boundary. Seconds are taken into account so that
    09:14:59 on a 30 minute grid lands on 09:00.
    """
    origin = to_minutes(open_time) * 60
    offset = value.hour * 3600 + value.minute * 60 + value.second - origin
    step = step_minutes * 60
    index, rest = divmod(offset, step)
    if rest * 2 > step:
        index += 1
    minutes = (origin + index * step) // 60
    minutes = min(max(minutes, 0), 24 * 60 - 1)
    return from_minutes(minutes)


def candidate_times(open_time: time, close_time: time, step_minutes: int, duration_minutes: int) -> List[time]:
    """Every grid start time whose appointment still ends by ``close_time``."""
    slots = []
    current = to_minutes(open_time)
    end = to_minutes(close_time)
    while current + duration_minutes <= end:
        slots.append(from_minutes(current))
        current += step_minutes
    return slots


def overlaps(start: time, duration_minutes: int, other_start: time, other_duration: int) -> bool:
    """Half-open interval overlap: back-to-back appointments do not clash."""
    a_start = to_minutes(start)
    b_start = to_minutes(other_start)
    return a_start < b_start + other_duration and b_start < a_start + duration_minutes


def overlaps_any(start: time, duration_minutes: int, booked: Iterable) -> bool:
    return any(overlaps(start, duration_minutes, slot.time, slot.duration_minutes) for slot in booked)


def rank_by_distance(requested: time, candidates: Iterable[time], limit: int) -> List[time]:
    """Nearest candidates to ``requested`` first; equal distance keeps chronological order."""
    target = to_minutes(requested)
    ordered = sorted(candidates, key=lambda t: (abs(to_minutes(t) - target), to_minutes(t)))
    return ordered[:limit]

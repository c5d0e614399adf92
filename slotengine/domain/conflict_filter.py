"""
Conflict filtering of candidate slots against booked sessions and "now".

A slot is dropped when it overlaps a booked session padded by the trailing
buffer, or when it starts at or before the reference instant. Overlap is
half-open: a slot that ends exactly when a session begins is still free.
"""

from datetime import time
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from pendulum import Date, DateTime

from .models import (
    ACTIVE_STATUSES,
    MINUTES_PER_DAY,
    BookedSession,
    CandidateSlot,
    OccupiedInterval,
    SessionStatus,
    time_to_minutes,
)


def build_occupied_intervals(
    sessions: Iterable[BookedSession],
    buffer_minutes: int,
    timezone: str,
    active_statuses: FrozenSet[SessionStatus] = ACTIVE_STATUSES,
) -> Dict[Date, List[OccupiedInterval]]:
    """
    Place active sessions on local days as blocked minute ranges.

    Each session blocks ``[start, start + duration + buffer)`` on the day it
    starts in ``timezone``. Whatever runs past midnight is carried onto the
    following day(s) starting at minute 0.
    """
    occupied: Dict[Date, List[OccupiedInterval]] = {}

    for session in sessions:
        if not session.is_active(active_statuses):
            continue

        local_start = session.scheduled_at.in_timezone(timezone)
        day = local_start.date()
        start_minute = local_start.hour * 60 + local_start.minute
        end_minute = start_minute + session.duration_minutes + buffer_minutes
        if local_start.second or local_start.microsecond:
            end_minute += 1

        while True:
            occupied.setdefault(day, []).append(
                OccupiedInterval(
                    start_minute=start_minute,
                    end_minute=min(end_minute, MINUTES_PER_DAY),
                )
            )
            if end_minute <= MINUTES_PER_DAY:
                break
            end_minute -= MINUTES_PER_DAY
            start_minute = 0
            day = day.add(days=1)

    return occupied


def filter_available(
    day: Date,
    candidate_slots: Sequence[Tuple[time, time]],
    occupied_intervals: Sequence[OccupiedInterval],
    reference_now: DateTime,
    timezone: str,
) -> List[CandidateSlot]:
    """
    Keep the candidate slots of one day that are neither occupied nor past.

    Args:
        day: Civil date the candidates belong to
        candidate_slots: (start_time, end_time) pairs from the slot generator
        occupied_intervals: Blocked minute ranges for that same day
        reference_now: Slots starting at or before this instant are dropped
        timezone: Reference timezone the day and times are expressed in

    Returns:
        The surviving slots, in candidate order
    """
    available: List[CandidateSlot] = []

    for start_time, end_time in candidate_slots:
        slot = CandidateSlot(date=day, start_time=start_time, end_time=end_time)
        start_minute = time_to_minutes(start_time)
        end_minute = time_to_minutes(end_time)

        if any(occ.overlaps(start_minute, end_minute) for occ in occupied_intervals):
            continue

        if is_in_past(slot.start_instant(timezone), reference_now):
            continue

        available.append(slot)

    return available


def is_in_past(start: DateTime, reference_now: DateTime) -> bool:
    """A slot starting exactly at "now" already counts as past."""
    return start <= reference_now


def conflicts_with_sessions(
    start: DateTime,
    duration_minutes: int,
    sessions: Iterable[BookedSession],
    buffer_minutes: int,
    active_statuses: FrozenSet[SessionStatus] = ACTIVE_STATUSES,
) -> bool:
    """
    Check one absolute slot against sessions, using the same padding rule as
    ``build_occupied_intervals``.
    """
    end = start.add(minutes=duration_minutes)

    for session in sessions:
        if not session.is_active(active_statuses):
            continue
        blocked_until = session.end_at.add(minutes=buffer_minutes)
        if start < blocked_until and end > session.scheduled_at:
            return True

    return False

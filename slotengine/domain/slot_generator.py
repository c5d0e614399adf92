"""
Candidate slot generation for a single day.

Pure integer-minute arithmetic: no dates, no timezones, no I/O.
"""

from datetime import time
from typing import List, Sequence, Tuple

from .models import TimeWindow, minutes_to_time


def generate_day_slots(
    windows: Sequence[TimeWindow],
    session_duration_minutes: int,
    buffer_minutes: int,
) -> List[Tuple[time, time]]:
    """
    Generate the ordered candidate slots for one day's windows.

    Each window is walked independently from its start: a slot is emitted
    while ``cursor + duration <= window end``, then the cursor moves on by
    ``duration + buffer``. Slots from different windows are neither merged
    nor de-duplicated.

    Example:
        Window: 09:00 - 12:00, duration 60, buffer 15
        Result: [09:00-10:00, 10:15-11:15]

    Args:
        windows: The day's availability windows, in stored order
        session_duration_minutes: Length of one session
        buffer_minutes: Idle time required after each session

    Returns:
        List of (start_time, end_time) pairs

    Raises:
        ValueError: If the duration is not positive or the buffer is negative
    """
    if session_duration_minutes <= 0:
        raise ValueError(
            f"session_duration_minutes must be greater than zero, got {session_duration_minutes}"
        )
    if buffer_minutes < 0:
        raise ValueError(f"buffer_minutes must not be negative, got {buffer_minutes}")

    step = session_duration_minutes + buffer_minutes
    slots: List[Tuple[time, time]] = []

    for window in windows:
        cursor = window.start_minute
        window_end = window.end_minute

        while cursor + session_duration_minutes <= window_end:
            slots.append(
                (
                    minutes_to_time(cursor),
                    minutes_to_time(cursor + session_duration_minutes),
                )
            )
            cursor += step

    return slots

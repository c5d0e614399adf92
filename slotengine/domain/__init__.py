"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .availability_decoder import decode_availability, parse_availability
from .capacity import is_under_cap, week_start_for
from .conflict_filter import build_occupied_intervals, conflicts_with_sessions, filter_available
from .models import (
    BookedSession,
    CandidateSlot,
    ProviderSchedulingConfig,
    SessionStatus,
    TimeWindow,
    WeeklyAvailability,
)
from .slot_generator import generate_day_slots

__all__ = [
    "BookedSession",
    "CandidateSlot",
    "ProviderSchedulingConfig",
    "SessionStatus",
    "TimeWindow",
    "WeeklyAvailability",
    "build_occupied_intervals",
    "conflicts_with_sessions",
    "decode_availability",
    "filter_available",
    "generate_day_slots",
    "is_under_cap",
    "parse_availability",
    "week_start_for",
]

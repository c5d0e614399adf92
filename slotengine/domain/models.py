"""
Domain models for weekly availability, booked sessions and bookable slots.
"""

import re
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import FrozenSet, Mapping, Optional, Sequence, Tuple, Union

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidSchedulingConfigError

MINUTES_PER_DAY = 24 * 60

# Index matches date.weekday(): 0=Monday, 6=Sunday
WEEKDAY_NAMES: Tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$", re.ASCII)


def time_to_minutes(value: time) -> int:
    """Return minutes since midnight for a wall-clock time."""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    """Convert minutes since midnight back to a wall-clock time."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minute of day must be within [0, {MINUTES_PER_DAY}), got {minutes}")
    return time(hour=minutes // 60, minute=minutes % 60)


def parse_clock(value: str) -> time:
    """
    Parse an ``HH:MM`` string into a wall-clock time.

    Raises:
        ValueError: If the string is not a valid time of day
    """
    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Expected time in HH:MM format, got {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Time of day out of range: {value!r}")

    return time(hour=hour, minute=minute)


@dataclass(frozen=True)
class TimeWindow:
    """
    A contiguous span of time-of-day during which a provider is available.

    Invariant: start must be before end. No date, no timezone.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(
                f"Window start {self.start:%H:%M} must be before end {self.end:%H:%M}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeWindow":
        """Build a window from two ``HH:MM`` strings."""
        return cls(start=parse_clock(start), end=parse_clock(end))

    @property
    def start_minute(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minute(self) -> int:
        return time_to_minutes(self.end)

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


@dataclass(frozen=True)
class WeeklyAvailability:
    """
    Recurring availability, one ordered tuple of windows per weekday.

    Rebuilt from the provider's stored configuration on every query.
    """
    monday: Tuple[TimeWindow, ...] = ()
    tuesday: Tuple[TimeWindow, ...] = ()
    wednesday: Tuple[TimeWindow, ...] = ()
    thursday: Tuple[TimeWindow, ...] = ()
    friday: Tuple[TimeWindow, ...] = ()
    saturday: Tuple[TimeWindow, ...] = ()
    sunday: Tuple[TimeWindow, ...] = ()

    @classmethod
    def from_mapping(cls, windows: Mapping[str, Sequence[TimeWindow]]) -> "WeeklyAvailability":
        """Build from a weekday-name mapping; missing days have no windows."""
        unknown = set(windows) - set(WEEKDAY_NAMES)
        if unknown:
            raise ValueError(f"Unknown weekday name(s): {', '.join(sorted(unknown))}")
        return cls(**{day: tuple(day_windows) for day, day_windows in windows.items()})

    def windows_for(self, day: date) -> Tuple[TimeWindow, ...]:
        """Return the windows configured for the weekday of a civil date."""
        return getattr(self, WEEKDAY_NAMES[day.weekday()])

    def is_empty(self) -> bool:
        return not any(getattr(self, day) for day in WEEKDAY_NAMES)


@dataclass(frozen=True)
class ProviderSchedulingConfig:
    """
    A provider's scheduling settings as stored by the profile store.

    ``availability`` is the raw serialized weekly availability; the engine
    decodes it on every query.
    """
    session_duration_minutes: int
    buffer_minutes: int
    availability: Optional[str]
    max_sessions_per_week: Optional[int] = None

    def __post_init__(self):
        if self.session_duration_minutes <= 0:
            raise InvalidSchedulingConfigError(
                f"session_duration_minutes must be greater than zero, got {self.session_duration_minutes}"
            )
        if self.buffer_minutes < 0:
            raise InvalidSchedulingConfigError(
                f"buffer_minutes must not be negative, got {self.buffer_minutes}"
            )
        if self.max_sessions_per_week is not None and self.max_sessions_per_week <= 0:
            raise InvalidSchedulingConfigError(
                f"max_sessions_per_week must be positive when set, got {self.max_sessions_per_week}"
            )


class SessionStatus(str, Enum):
    """Lifecycle status of a booked session."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS}
)


@dataclass(frozen=True)
class BookedSession:
    """
    A session committed by the booking workflow.

    Invariant: scheduled_at is timezone-aware.
    """
    provider_id: str
    scheduled_at: DateTime
    duration_minutes: int
    status: SessionStatus = SessionStatus.SCHEDULED
    session_id: Optional[str] = None

    def __post_init__(self):
        if self.scheduled_at.tzinfo is None:
            raise ValueError(f"scheduled_at must be timezone-aware, got {self.scheduled_at}")
        if self.duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be greater than zero, got {self.duration_minutes}")
        # Accept stdlib datetimes but always hold a pendulum instance
        object.__setattr__(self, "scheduled_at", pendulum.instance(self.scheduled_at))

    @property
    def end_at(self) -> DateTime:
        return self.scheduled_at.add(minutes=self.duration_minutes)

    def is_active(self, active_statuses: FrozenSet[SessionStatus] = ACTIVE_STATUSES) -> bool:
        """Only active sessions block slots and count toward the weekly cap."""
        return self.status in active_statuses


@dataclass(frozen=True)
class CandidateSlot:
    """
    A bookable slot returned by the engine. Never persisted.
    """
    date: Date
    start_time: time
    end_time: time

    def start_instant(self, timezone: str) -> DateTime:
        """Absolute start of the slot in the reference timezone."""
        return pendulum.datetime(
            self.date.year,
            self.date.month,
            self.date.day,
            self.start_time.hour,
            self.start_time.minute,
            tz=timezone,
        )

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:MM - HH:MM
        """
        weekday = WEEKDAY_NAMES[self.date.weekday()].capitalize()
        return (
            f"{weekday}, {self.date.isoformat()} | "
            f"{self.start_time:%H:%M} - {self.end_time:%H:%M}"
        )


@dataclass(frozen=True)
class OccupiedInterval:
    """
    Minutes of one local day blocked by a session plus its trailing buffer.
    """
    start_minute: int
    end_minute: int

    def overlaps(self, start_minute: int, end_minute: int) -> bool:
        """Half-open overlap; touching boundaries do not conflict."""
        return start_minute < self.end_minute and end_minute > self.start_minute


@dataclass(frozen=True)
class BookingRequest:
    """Everything a booking writer needs to re-validate and insert atomically."""
    provider_id: str
    scheduled_at: DateTime
    duration_minutes: int
    buffer_minutes: int
    week_start: DateTime
    max_sessions_per_week: Optional[int] = None


class UnavailableReason(str, Enum):
    """Why a requested slot cannot be booked."""
    PROVIDER_NOT_FOUND = "provider_not_found"
    IN_PAST = "in_past"
    CONFLICT = "conflict"
    WEEKLY_CAP_REACHED = "weekly_cap_reached"


@dataclass(frozen=True)
class Booked:
    session: BookedSession


@dataclass(frozen=True)
class SlotNoLongerAvailable:
    reason: UnavailableReason


BookingOutcome = Union[Booked, SlotNoLongerAvailable]

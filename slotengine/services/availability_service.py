"""
Application service answering availability questions for a provider.

The service loads the provider's configuration and sessions through store
protocols, then delegates decoding, slot generation, conflict filtering and
the weekly cap to the domain layer. It holds no state between calls and
never writes, except through an optional ``BookingWriter`` when confirming.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from ..config import EngineConfig
from ..domain.availability_decoder import parse_availability
from ..domain.conflict_filter import (
    build_occupied_intervals,
    conflicts_with_sessions,
    filter_available,
    is_in_past,
)
from ..domain.exceptions import SlotEngineError
from ..domain.models import (
    BookingOutcome,
    BookingRequest,
    CandidateSlot,
    ProviderSchedulingConfig,
    SlotNoLongerAvailable,
    UnavailableReason,
)
from ..domain.slot_generator import generate_day_slots
from .capacity_guard import CapacityGuard
from .stores import BookingWriter, ProfileStore, SessionStore

logger = logging.getLogger(__name__)

# Longest session a point check looks back for when searching for overlaps
MAX_SESSION_LOOKBACK_DAYS = 1


class AvailabilityService:
    """
    Computes bookable slots and re-checks single slots before booking.

    Dependency inversion toward protocols makes it easy to plug in a real
    database-backed store or the in-memory store used in tests.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        session_store: SessionStore,
        config: Optional[EngineConfig] = None,
        booking_writer: Optional[BookingWriter] = None,
    ) -> None:
        self._profile_store = profile_store
        self._session_store = session_store
        self._config = config or EngineConfig()
        self._booking_writer = booking_writer
        self._capacity_guard = CapacityGuard(
            session_store,
            week_start=self._config.week_start,
            timezone=self._config.timezone,
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    async def compute_available_slots(
        self,
        provider_id: str,
        from_date: date,
        to_date: date,
        now: Optional[datetime] = None,
    ) -> List[CandidateSlot]:
        """
        List every bookable slot between two civil dates, both inclusive.

        Returns an empty list when the provider is unknown or has no usable
        availability. Store failures propagate to the caller.
        """
        tz = self._config.timezone
        start_day = _as_civil_date(from_date, tz)
        end_day = _as_civil_date(to_date, tz)

        if end_day < start_day:
            return []

        config = await self._profile_store.get_scheduling_config(provider_id)
        if config is None:
            logger.debug("No scheduling config for provider %s", provider_id)
            return []

        availability = parse_availability(config.availability, provider_id=provider_id)
        if availability is None or availability.is_empty():
            return []

        reference_now = _resolve_now(now, tz)

        # One day of lookback so sessions running past midnight still block
        from_instant = _local_midnight(start_day, tz).subtract(days=1)
        to_instant = _local_midnight(end_day.add(days=1), tz)
        sessions = await self._session_store.find_active_sessions(
            provider_id, from_instant, to_instant
        )

        occupied = build_occupied_intervals(
            sessions,
            buffer_minutes=config.buffer_minutes,
            timezone=tz,
            active_statuses=self._config.active_status_set(),
        )

        slots: List[CandidateSlot] = []
        current = start_day

        while current <= end_day:
            windows = availability.windows_for(current)

            if windows:
                candidates = generate_day_slots(
                    windows,
                    config.session_duration_minutes,
                    config.buffer_minutes,
                )
                slots.extend(
                    filter_available(
                        current,
                        candidates,
                        occupied.get(current, []),
                        reference_now,
                        tz,
                    )
                )

            current = current.add(days=1)

        logger.debug(
            "Provider %s: %d slot(s) between %s and %s (%d session(s) considered)",
            provider_id,
            len(slots),
            start_day.isoformat(),
            end_day.isoformat(),
            len(sessions),
        )

        return slots

    async def is_slot_still_available(
        self,
        provider_id: str,
        candidate_instant: datetime,
        duration_minutes: int,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Re-check one slot right before it is committed.

        This is an optimistic pre-check only; exclusivity is enforced by the
        booking writer.
        """
        _, reason = await self._check_slot(provider_id, candidate_instant, duration_minutes, now)
        return reason is None

    async def confirm_booking(
        self,
        provider_id: str,
        candidate_instant: datetime,
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> BookingOutcome:
        """
        Pre-check a slot and hand it to the booking writer for an atomic commit.

        Args:
            provider_id: Provider being booked
            candidate_instant: Requested session start
            duration_minutes: Session length; defaults to the provider's setting
            now: Reference instant for the past check

        Returns:
            Booked with the created session, or SlotNoLongerAvailable with a reason

        Raises:
            SlotEngineError: If the service was built without a booking writer
        """
        if self._booking_writer is None:
            raise SlotEngineError("confirm_booking requires a booking writer")

        config, reason = await self._check_slot(provider_id, candidate_instant, duration_minutes, now)
        if reason is not None:
            return SlotNoLongerAvailable(reason=reason)

        start = _as_instant(candidate_instant, self._config.timezone)
        request = BookingRequest(
            provider_id=provider_id,
            scheduled_at=start,
            duration_minutes=duration_minutes or config.session_duration_minutes,
            buffer_minutes=config.buffer_minutes,
            week_start=self._capacity_guard.week_start_for(start),
            max_sessions_per_week=config.max_sessions_per_week,
        )

        outcome = await self._booking_writer.commit_if_free(request)
        if isinstance(outcome, SlotNoLongerAvailable):
            logger.info(
                "Provider %s: slot %s was refused at commit (%s)",
                provider_id,
                start.to_iso8601_string(),
                outcome.reason.value,
            )

        return outcome

    async def _check_slot(
        self,
        provider_id: str,
        candidate_instant: datetime,
        duration_minutes: Optional[int],
        now: Optional[datetime],
    ) -> Tuple[Optional[ProviderSchedulingConfig], Optional[UnavailableReason]]:
        """Return the provider config and the first reason the slot is unavailable, if any."""
        if duration_minutes is not None and duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be greater than zero, got {duration_minutes}")

        tz = self._config.timezone
        config = await self._profile_store.get_scheduling_config(provider_id)
        if config is None:
            return None, UnavailableReason.PROVIDER_NOT_FOUND

        start = _as_instant(candidate_instant, tz)
        duration = duration_minutes or config.session_duration_minutes

        if is_in_past(start, _resolve_now(now, tz)):
            return config, UnavailableReason.IN_PAST

        sessions = await self._session_store.find_active_sessions(
            provider_id,
            start.subtract(days=MAX_SESSION_LOOKBACK_DAYS),
            start.add(minutes=duration + config.buffer_minutes),
        )
        if conflicts_with_sessions(
            start,
            duration,
            sessions,
            buffer_minutes=config.buffer_minutes,
            active_statuses=self._config.active_status_set(),
        ):
            logger.debug("Provider %s: %s conflicts with a booked session", provider_id, start)
            return config, UnavailableReason.CONFLICT

        if not await self._capacity_guard.has_capacity(
            provider_id, start, config.max_sessions_per_week
        ):
            return config, UnavailableReason.WEEKLY_CAP_REACHED

        return config, None


def _as_civil_date(value: date, timezone: str) -> Date:
    """Normalise a date or datetime to a pendulum Date in the reference zone."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = pendulum.instance(value).in_timezone(timezone)
        value = value.date()
    return pendulum.date(value.year, value.month, value.day)


def _local_midnight(day: Date, timezone: str) -> DateTime:
    return pendulum.datetime(day.year, day.month, day.day, tz=timezone)


def _as_instant(value: datetime, timezone: str) -> DateTime:
    """Naive datetimes are wall-clock times on the reference clock."""
    return pendulum.instance(value, tz=pendulum.timezone(timezone))


def _resolve_now(now: Optional[datetime], timezone: str) -> DateTime:
    if now is None:
        return pendulum.now(timezone)
    return _as_instant(now, timezone)

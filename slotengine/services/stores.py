"""
Protocols for the externally owned stores the engine reads from.

The engine never writes through ``ProfileStore`` or ``SessionStore``. The only
write, committing a booking, goes through ``BookingWriter``, which must
re-validate and insert in one atomic step.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from pendulum import DateTime

from ..domain.models import BookedSession, BookingOutcome, BookingRequest, ProviderSchedulingConfig


class ProfileStore(Protocol):
    """Owner of provider scheduling configuration."""

    async def get_scheduling_config(self, provider_id: str) -> Optional[ProviderSchedulingConfig]:
        """Return the provider's configuration, or None if the provider is unknown."""


class SessionStore(Protocol):
    """Read access to sessions committed by the booking workflow."""

    async def find_active_sessions(
        self,
        provider_id: str,
        from_instant: DateTime,
        to_instant: DateTime,
    ) -> List[BookedSession]:
        """Return active sessions with ``from_instant <= scheduled_at < to_instant``."""

    async def count_active_sessions_in_week(self, provider_id: str, week_start: DateTime) -> int:
        """Count active sessions with ``week_start <= scheduled_at < week_start + 7 days``."""


class BookingWriter(Protocol):
    """Transactional write path that owns the at-most-once booking guarantee."""

    async def commit_if_free(self, request: BookingRequest) -> BookingOutcome:
        """
        Re-check conflicts and the weekly cap and insert the session atomically.

        Returns Booked with the created session, or SlotNoLongerAvailable
        carrying CONFLICT or WEEKLY_CAP_REACHED, whichever check failed.
        """

"""
Weekly booking cap check, evaluated again at booking-confirmation time.
"""

from __future__ import annotations

import logging
from typing import Optional

from pendulum import DateTime

from ..domain.capacity import DEFAULT_WEEK_START, is_under_cap, week_start_for
from .stores import SessionStore

logger = logging.getLogger(__name__)


class CapacityGuard:
    """
    Verifies a provider still has room in the calendar week of an instant.

    The week-start convention and timezone are explicit so the result never
    depends on the host's locale or clock settings.
    """

    def __init__(
        self,
        session_store: SessionStore,
        week_start: str = DEFAULT_WEEK_START,
        timezone: str = "UTC",
    ) -> None:
        self._session_store = session_store
        self._week_start = week_start
        self._timezone = timezone

    def week_start_for(self, instant: DateTime) -> DateTime:
        return week_start_for(instant, week_start=self._week_start, timezone=self._timezone)

    async def has_capacity(
        self,
        provider_id: str,
        candidate_instant: DateTime,
        max_sessions_per_week: Optional[int],
    ) -> bool:
        """Return True if another session fits under the weekly cap."""
        if max_sessions_per_week is None:
            return True

        week_start = self.week_start_for(candidate_instant)
        count = await self._session_store.count_active_sessions_in_week(provider_id, week_start)

        logger.debug(
            "Provider %s has %d/%d active sessions in week starting %s",
            provider_id,
            count,
            max_sessions_per_week,
            week_start.to_date_string(),
        )

        return is_under_cap(count, max_sessions_per_week)

"""
In-memory profile and session store for tests and local experiments.

Implements ``ProfileStore``, ``SessionStore`` and ``BookingWriter`` without a
database. Commits are serialised with an ``asyncio.Lock`` so that of several
concurrent attempts on the same slot exactly one succeeds.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

import yaml
from pendulum import DateTime
from pydantic import BaseModel, Field

from ..domain.capacity import is_under_cap
from ..domain.conflict_filter import conflicts_with_sessions
from ..domain.exceptions import DataStoreUnavailableError
from ..domain.models import (
    ACTIVE_STATUSES,
    Booked,
    BookedSession,
    BookingOutcome,
    BookingRequest,
    ProviderSchedulingConfig,
    SessionStatus,
    SlotNoLongerAvailable,
    UnavailableReason,
)

logger = logging.getLogger(__name__)


class _ProviderFixture(BaseModel):
    session_duration_minutes: int
    buffer_minutes: int
    max_sessions_per_week: Optional[int] = None
    # Either the stored JSON string or a weekday mapping to be serialised
    availability: Union[str, Dict[str, Any], None] = None


class _SessionFixture(BaseModel):
    provider_id: str
    scheduled_at: datetime
    duration_minutes: int = 60
    status: SessionStatus = SessionStatus.SCHEDULED
    session_id: Optional[str] = None


class _StoreFixture(BaseModel):
    providers: Dict[str, _ProviderFixture] = Field(default_factory=dict)
    sessions: List[_SessionFixture] = Field(default_factory=list)


class InMemorySchedulingStore:
    """
    Dictionary-backed stand-in for the profile store, session store and
    booking writer.

    ``set_online(False)`` makes every call raise ``DataStoreUnavailableError``,
    which is how tests simulate an unreachable database.
    """

    def __init__(
        self,
        configs: Optional[Mapping[str, ProviderSchedulingConfig]] = None,
        sessions: Optional[Iterable[BookedSession]] = None,
        active_statuses: FrozenSet[SessionStatus] = ACTIVE_STATUSES,
    ):
        self._configs: Dict[str, ProviderSchedulingConfig] = dict(configs or {})
        self._sessions: List[BookedSession] = list(sessions or [])
        self._active_statuses = active_statuses
        self._lock = asyncio.Lock()
        self._online = True
        self._next_id = len(self._sessions) + 1

    @classmethod
    def load_from_yaml(
        cls,
        fixture_path: Path,
        active_statuses: FrozenSet[SessionStatus] = ACTIVE_STATUSES,
    ) -> "InMemorySchedulingStore":
        """
        Load providers and sessions from a YAML fixture.

        Every provider must state its session_duration_minutes and
        buffer_minutes. ``active_statuses`` decides which sessions block time
        and count toward the weekly cap.

        Times inside an availability mapping must be quoted ("10:15"), since
        YAML 1.1 reads unquoted values such as 10:15 as integers.

        Raises:
            FileNotFoundError: If the fixture doesn't exist
            ValueError: If the fixture is invalid
        """
        if not fixture_path.exists():
            raise FileNotFoundError(f"Fixture file not found: {fixture_path}")

        try:
            with open(fixture_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {fixture_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Fixture file must contain a mapping at the root level.")

        fixture = _StoreFixture(**data)

        configs: Dict[str, ProviderSchedulingConfig] = {}
        for provider_id, provider in fixture.providers.items():
            availability = provider.availability
            if isinstance(availability, dict):
                availability = json.dumps(availability)
            configs[provider_id] = ProviderSchedulingConfig(
                session_duration_minutes=provider.session_duration_minutes,
                buffer_minutes=provider.buffer_minutes,
                availability=availability,
                max_sessions_per_week=provider.max_sessions_per_week,
            )

        sessions = [
            BookedSession(
                provider_id=item.provider_id,
                scheduled_at=item.scheduled_at,
                duration_minutes=item.duration_minutes,
                status=item.status,
                session_id=item.session_id,
            )
            for item in fixture.sessions
        ]

        logger.debug(
            "Loaded %d provider(s) and %d session(s) from %s",
            len(configs),
            len(sessions),
            fixture_path,
        )
        return cls(configs=configs, sessions=sessions, active_statuses=active_statuses)

    @property
    def sessions(self) -> Tuple[BookedSession, ...]:
        return tuple(self._sessions)

    def set_online(self, online: bool) -> None:
        self._online = online

    def add_provider(self, provider_id: str, config: ProviderSchedulingConfig) -> None:
        self._configs[provider_id] = config

    def add_session(self, session: BookedSession) -> None:
        self._sessions.append(session)

    async def get_scheduling_config(self, provider_id: str) -> Optional[ProviderSchedulingConfig]:
        self._ensure_online()
        return self._configs.get(provider_id)

    async def find_active_sessions(
        self,
        provider_id: str,
        from_instant: DateTime,
        to_instant: DateTime,
    ) -> List[BookedSession]:
        self._ensure_online()
        return [
            session
            for session in self._active_sessions(provider_id)
            if from_instant <= session.scheduled_at < to_instant
        ]

    async def count_active_sessions_in_week(self, provider_id: str, week_start: DateTime) -> int:
        self._ensure_online()
        week_end = week_start.add(days=7)
        return sum(
            1
            for session in self._active_sessions(provider_id)
            if week_start <= session.scheduled_at < week_end
        )

    async def commit_if_free(self, request: BookingRequest) -> BookingOutcome:
        """Re-validate and insert under the lock, reporting why a lost slot was refused."""
        async with self._lock:
            # The read yields to the loop; the lock keeps the check-then-insert exclusive
            existing = await self._load_active_sessions(request.provider_id)

            if conflicts_with_sessions(
                request.scheduled_at,
                request.duration_minutes,
                existing,
                buffer_minutes=request.buffer_minutes,
                active_statuses=self._active_statuses,
            ):
                return SlotNoLongerAvailable(reason=UnavailableReason.CONFLICT)

            week_end = request.week_start.add(days=7)
            week_count = sum(
                1 for session in existing if request.week_start <= session.scheduled_at < week_end
            )
            if not is_under_cap(week_count, request.max_sessions_per_week):
                return SlotNoLongerAvailable(reason=UnavailableReason.WEEKLY_CAP_REACHED)

            session = BookedSession(
                provider_id=request.provider_id,
                scheduled_at=request.scheduled_at,
                duration_minutes=request.duration_minutes,
                status=SessionStatus.SCHEDULED,
                session_id=f"session-{self._next_id}",
            )
            self._next_id += 1
            self._sessions.append(session)
            return Booked(session=session)

    async def _load_active_sessions(self, provider_id: str) -> List[BookedSession]:
        self._ensure_online()
        return self._active_sessions(provider_id)

    def _active_sessions(self, provider_id: str) -> List[BookedSession]:
        return [
            session
            for session in self._sessions
            if session.provider_id == provider_id and session.is_active(self._active_statuses)
        ]

    def _ensure_online(self) -> None:
        if not self._online:
            raise DataStoreUnavailableError("Scheduling store is unavailable")

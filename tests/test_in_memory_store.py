"""
Tests for the in-memory scheduling store.
"""

import asyncio

import pendulum
import pytest

from slotengine.adapters.in_memory_store import InMemorySchedulingStore
from slotengine.domain.availability_decoder import decode_availability
from slotengine.domain.exceptions import DataStoreUnavailableError
from slotengine.domain.models import (
    Booked,
    BookingRequest,
    SessionStatus,
    SlotNoLongerAvailable,
    TimeWindow,
    UnavailableReason,
)

from factories import YieldingStore, make_config, make_session

FIXTURE = """
providers:
  coach-1:
    session_duration_minutes: 45
    buffer_minutes: 10
    max_sessions_per_week: 3
    availability:
      monday:
        - {start: "09:00", end: "12:00"}
  coach-2:
    session_duration_minutes: 30
    buffer_minutes: 0
    availability: '{"friday": [{"start": "10:00", "end": "11:00"}]}'
sessions:
  - provider_id: coach-1
    scheduled_at: "2024-11-25T10:15:00+00:00"
    duration_minutes: 45
  - provider_id: coach-1
    scheduled_at: "2024-11-26T10:15:00+00:00"
    status: cancelled
"""


def _request(hour, minute=0, day=25, cap=None, duration=60, buffer=15):
    start = pendulum.datetime(2024, 11, day, hour, minute, tz="UTC")
    return BookingRequest(
        provider_id="coach-1",
        scheduled_at=start,
        duration_minutes=duration,
        buffer_minutes=buffer,
        week_start=pendulum.datetime(2024, 11, 24, tz="UTC"),
        max_sessions_per_week=cap,
    )


class TestLoadFromYaml:
    """Loading providers and sessions from a fixture file."""

    def test_loads_providers_and_sessions(self, tmp_path):
        fixture_path = tmp_path / "fixture.yaml"
        fixture_path.write_text(FIXTURE, encoding="utf-8")

        store = InMemorySchedulingStore.load_from_yaml(fixture_path)
        coach_1 = asyncio.run(store.get_scheduling_config("coach-1"))
        coach_2 = asyncio.run(store.get_scheduling_config("coach-2"))

        assert coach_1.session_duration_minutes == 45
        assert coach_1.max_sessions_per_week == 3
        assert decode_availability(coach_1.availability).monday == (TimeWindow.parse("09:00", "12:00"),)
        assert decode_availability(coach_2.availability).friday == (TimeWindow.parse("10:00", "11:00"),)
        assert coach_2.session_duration_minutes == 30
        assert coach_2.buffer_minutes == 0
        assert [s.status for s in store.sessions] == [SessionStatus.SCHEDULED, SessionStatus.CANCELLED]
        assert store.sessions[0].scheduled_at == pendulum.datetime(2024, 11, 25, 10, 15, tz="UTC")

    def test_missing_fixture(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            InMemorySchedulingStore.load_from_yaml(tmp_path / "nope.yaml")

    def test_invalid_fixture(self, tmp_path):
        fixture_path = tmp_path / "fixture.yaml"
        fixture_path.write_text("providers:\n  coach-1:\n    session_duration_minutes: 0\n    buffer_minutes: 0\n", encoding="utf-8")

        with pytest.raises(ValueError):
            InMemorySchedulingStore.load_from_yaml(fixture_path)

    def test_provider_must_state_duration_and_buffer(self, tmp_path):
        fixture_path = tmp_path / "fixture.yaml"
        fixture_path.write_text(
            "providers:\n  coach-1:\n    session_duration_minutes: 45\n", encoding="utf-8"
        )

        with pytest.raises(ValueError, match="buffer_minutes"):
            InMemorySchedulingStore.load_from_yaml(fixture_path)

    def test_active_statuses_decide_what_counts(self, tmp_path):
        fixture_path = tmp_path / "fixture.yaml"
        fixture_path.write_text(FIXTURE, encoding="utf-8")
        week_start = pendulum.datetime(2024, 11, 24, tz="UTC")

        default_store = InMemorySchedulingStore.load_from_yaml(fixture_path)
        wide_store = InMemorySchedulingStore.load_from_yaml(
            fixture_path,
            active_statuses=frozenset({SessionStatus.SCHEDULED, SessionStatus.CANCELLED}),
        )

        assert asyncio.run(default_store.count_active_sessions_in_week("coach-1", week_start)) == 1
        assert asyncio.run(wide_store.count_active_sessions_in_week("coach-1", week_start)) == 2


class TestQueries:
    """Session lookups."""

    def test_find_active_sessions_is_half_open(self):
        sessions = [
            make_session(25, 9, 0),
            make_session(25, 12, 0),
            make_session(25, 10, 0, status=SessionStatus.CANCELLED),
            make_session(25, 10, 0, provider_id="coach-2"),
        ]
        store = InMemorySchedulingStore(sessions=sessions)

        found = asyncio.run(
            store.find_active_sessions(
                "coach-1",
                pendulum.datetime(2024, 11, 25, 9, 0, tz="UTC"),
                pendulum.datetime(2024, 11, 25, 12, 0, tz="UTC"),
            )
        )

        assert found == [sessions[0]]

    def test_count_active_sessions_in_week(self):
        sessions = [
            make_session(24, 0, 0),
            make_session(30, 23, 0),
            make_session(23, 23, 0),
            make_session(26, 9, 0, status=SessionStatus.COMPLETED),
        ]
        store = InMemorySchedulingStore(sessions=sessions)

        count = asyncio.run(
            store.count_active_sessions_in_week("coach-1", pendulum.datetime(2024, 11, 24, tz="UTC"))
        )

        assert count == 2

    def test_offline_store_raises(self):
        store = InMemorySchedulingStore(configs={"coach-1": make_config()})
        store.set_online(False)

        with pytest.raises(DataStoreUnavailableError):
            asyncio.run(store.get_scheduling_config("coach-1"))


class TestCommitIfFree:
    """Atomic conditional insert."""

    def test_second_commit_for_same_slot_rejected(self):
        store = InMemorySchedulingStore()

        first = asyncio.run(store.commit_if_free(_request(9)))
        second = asyncio.run(store.commit_if_free(_request(9)))

        assert isinstance(first, Booked)
        assert first.session.session_id == "session-1"
        assert second == SlotNoLongerAvailable(UnavailableReason.CONFLICT)
        assert store.sessions == (first.session,)

    def test_commit_respects_buffer(self):
        store = InMemorySchedulingStore(sessions=[make_session(25, 9, 0)])

        assert asyncio.run(store.commit_if_free(_request(10, 0))) == SlotNoLongerAvailable(
            UnavailableReason.CONFLICT
        )
        assert isinstance(asyncio.run(store.commit_if_free(_request(10, 15))), Booked)

    def test_commit_respects_weekly_cap(self):
        store = InMemorySchedulingStore(sessions=[make_session(25, 9, 0)])

        assert asyncio.run(store.commit_if_free(_request(9, day=27, cap=1))) == SlotNoLongerAvailable(
            UnavailableReason.WEEKLY_CAP_REACHED
        )
        assert isinstance(asyncio.run(store.commit_if_free(_request(9, day=27, cap=2))), Booked)

    def test_commit_uses_store_active_statuses(self):
        sessions = [make_session(25, 9, 0, status=SessionStatus.IN_PROGRESS)]
        store = InMemorySchedulingStore(sessions=sessions, active_statuses=frozenset({SessionStatus.SCHEDULED}))

        assert isinstance(asyncio.run(store.commit_if_free(_request(9, day=27, cap=1))), Booked)

    def test_offline_commit_raises(self):
        store = InMemorySchedulingStore()
        store.set_online(False)

        with pytest.raises(DataStoreUnavailableError):
            asyncio.run(store.commit_if_free(_request(9)))

    def test_concurrent_commits(self):
        """Reads that yield mid-commit still let exactly one commit through."""
        store = YieldingStore()

        async def commit_many():
            return await asyncio.gather(*(store.commit_if_free(_request(9)) for _ in range(5)))

        results = asyncio.run(commit_many())

        assert store.commit_calls == 5
        assert sum(isinstance(result, Booked) for result in results) == 1
        assert results.count(SlotNoLongerAvailable(UnavailableReason.CONFLICT)) == 4
        assert len(store.sessions) == 1

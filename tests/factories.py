"""
Builders shared by the slot engine tests.
"""

import asyncio
import json

import pendulum

from slotengine.adapters.in_memory_store import InMemorySchedulingStore
from slotengine.config import EngineConfig
from slotengine.domain.models import BookedSession, ProviderSchedulingConfig, SessionStatus
from slotengine.services.availability_service import AvailabilityService

MONDAY_MORNINGS = json.dumps({"monday": [{"start": "09:00", "end": "12:00"}]})

# Wednesday before the Monday 2024-11-25 used throughout the tests
BEFORE_ALL_SLOTS = pendulum.datetime(2024, 11, 20, 12, 0, tz="UTC")


def make_config(availability=MONDAY_MORNINGS, duration=60, buffer=15, cap=None):
    return ProviderSchedulingConfig(
        session_duration_minutes=duration,
        buffer_minutes=buffer,
        availability=availability,
        max_sessions_per_week=cap,
    )


def make_session(day, hour, minute=0, duration=60, status=SessionStatus.SCHEDULED, provider_id="coach-1"):
    return BookedSession(
        provider_id=provider_id,
        scheduled_at=pendulum.datetime(2024, 11, day, hour, minute, tz="UTC"),
        duration_minutes=duration,
        status=status,
    )


def make_service(config=None, sessions=(), engine_config=None, provider_id="coach-1", store_class=None):
    engine_config = engine_config or EngineConfig()
    configs = {provider_id: config} if config is not None else {}
    store = (store_class or InMemorySchedulingStore)(
        configs=configs, sessions=sessions, active_statuses=engine_config.active_status_set()
    )
    service = AvailabilityService(store, store, config=engine_config, booking_writer=store)
    return service, store




class YieldingStore(InMemorySchedulingStore):
    """
    In-memory store whose reads give control back to the event loop, the way
    a database round trip would. Counts calls to ``commit_if_free``.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.commit_calls = 0

    async def find_active_sessions(self, provider_id, from_instant, to_instant):
        await asyncio.sleep(0)
        return await super().find_active_sessions(provider_id, from_instant, to_instant)

    async def count_active_sessions_in_week(self, provider_id, week_start):
        await asyncio.sleep(0)
        return await super().count_active_sessions_in_week(provider_id, week_start)

    async def commit_if_free(self, request):
        self.commit_calls += 1
        return await super().commit_if_free(request)

    async def _load_active_sessions(self, provider_id):
        await asyncio.sleep(0)
        return await super()._load_active_sessions(provider_id)

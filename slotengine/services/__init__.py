"""
Service layer helpers that orchestrate stores and domain logic.
"""

from .availability_service import AvailabilityService
from .capacity_guard import CapacityGuard
from .stores import BookingWriter, ProfileStore, SessionStore

__all__ = ["AvailabilityService", "BookingWriter", "CapacityGuard", "ProfileStore", "SessionStore"]

"""
Domain-specific exception hierarchy for the slot engine.
"""

from typing import List, Sequence


class SlotEngineError(Exception):
    """Base class for all engine-level errors."""


class AvailabilityValidationError(SlotEngineError):
    """Raised when stored weekly availability cannot be turned into a valid model."""

    def __init__(self, problems: Sequence[str]):
        self.problems: List[str] = list(problems)
        super().__init__("Invalid weekly availability: " + "; ".join(self.problems))


class InvalidSchedulingConfigError(SlotEngineError, ValueError):
    """Raised when a provider's scheduling values are out of range."""


class DataStoreUnavailableError(SlotEngineError):
    """Raised by store adapters when configuration or session data cannot be read."""

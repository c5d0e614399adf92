"""
Adapters layer - Concrete store implementations.
"""

from .in_memory_store import InMemorySchedulingStore

__all__ = ["InMemorySchedulingStore"]

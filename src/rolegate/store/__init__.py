"""Relation store implementations."""

from rolegate.store.memory import MemoryRelationStore

__all__ = ["MemoryRelationStore"]

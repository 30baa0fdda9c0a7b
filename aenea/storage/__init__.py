"""Storage backends."""

from aenea.storage.memory import InMemoryStorage

__all__ = ["InMemoryStorage"]

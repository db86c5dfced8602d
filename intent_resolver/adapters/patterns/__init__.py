"""Pattern store adapters - Implementations of the PatternStorePort.

Available implementations:
- InMemoryPatternStore: Bounded thread-safe history
- JsonFilePatternStore: Same, persisted to a JSON file
"""

from .json_store import JsonFilePatternStore
from .memory_store import InMemoryPatternStore

__all__ = ["InMemoryPatternStore", "JsonFilePatternStore"]

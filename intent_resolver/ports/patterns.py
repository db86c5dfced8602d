"""Pattern store port - History of confirmed resolutions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Protocol, Tuple

if TYPE_CHECKING:
    from ..domain.models import LearnedPattern, ParseRecord


class PatternStorePort(Protocol):
    """Port for the pattern-learning store.

    Implementations must tolerate concurrent reads and writes from
    several sessions. Writes are append-only.

    Implementations:
    - adapters/patterns/memory_store.py (InMemoryPatternStore)
    - adapters/patterns/json_store.py (JsonFilePatternStore)
    """

    def record(self, record: ParseRecord) -> None:
        """Append a confirmed resolution to the history."""
        ...

    def find_similar(self, text: str, limit: int = 3) -> List[Tuple[ParseRecord, float]]:
        """Return up to ``limit`` past records similar to ``text``.

        Returns:
            (record, similarity) pairs, most similar first.
        """
        ...

    def rebuild_patterns(self) -> List[LearnedPattern]:
        """Recompute learned patterns from the whole history."""
        ...

    def patterns(self) -> List[LearnedPattern]:
        """Return the last computed patterns."""
        ...

    def statistics(self) -> Dict[str, Any]:
        """Return aggregate statistics about the history."""
        ...

"""Similarity port - Map destination phrases to canonical destinations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import DestinationMatch


class DestinationSimilarityPort(Protocol):
    """Port for destination similarity lookup.

    Implementations:
    - adapters/similarity/fuzzy_resolver.py (rapidfuzz over the gazetteer)
    - adapters/similarity/embedding_resolver.py (transformers embeddings)
    """

    def is_available(self) -> bool:
        """Return True when the backend can serve lookups."""
        ...

    def closest(self, phrase: str, top_k: int = 3) -> Optional[DestinationMatch]:
        """Return the closest known destination and its alternates.

        Args:
            phrase: Free-text destination phrase.
            top_k: Number of candidates to consider (best + alternates).

        Returns:
            The best match, or None if nothing is close enough.
        """
        ...

    def suggest(self, tags: Sequence[str], limit: int = 3) -> Sequence[str]:
        """Return destinations whose profile fits the given interest tags."""
        ...

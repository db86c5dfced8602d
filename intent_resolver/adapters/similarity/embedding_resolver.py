"""Embedding-based destination resolver.

Embeds the phrase and every gazetteer description ("Kyoto history
culture nature architecture") with a HuggingFace feature-extraction
pipeline and ranks destinations by cosine similarity. The model is
loaded lazily through the model cache on first use; phrase embeddings
live in a separate bounded cache so they never evict the model.
"""

from __future__ import annotations

import importlib.util
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...config import SimilarityConfig, get_config
from ...domain.errors import LayerUnavailableError
from ...domain.models import DestinationMatch
from ...nlp.gazetteer import ALL_PLACES, CITIES
from ...ports.cache import CachePort
from ..cache.memory_cache import InMemoryCache

Vector = List[float]


def mean_pool(token_vectors: Sequence[Sequence[float]]) -> Vector:
    """Average token embeddings into one sentence vector."""
    if not token_vectors:
        return []
    size = len(token_vectors[0])
    totals = [0.0] * size
    for vector in token_vectors:
        for i, value in enumerate(vector):
            totals[i] += value
    return [v / len(token_vectors) for v in totals]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return dot / norm


@dataclass
class EmbeddingDestinationResolver:
    """Vector similarity over destination descriptions.

    This adapter implements DestinationSimilarityPort using a
    ``transformers`` feature-extraction pipeline.

    Attributes:
        config: Similarity settings (embedding_model, min_score,
            vector_cache_size)
        cache: Cache for the loaded pipeline
        vectors: Cache for computed embeddings (created from config when
            not given)
    """

    config: SimilarityConfig = field(default_factory=lambda: get_config().similarity)
    cache: CachePort[Any] = field(default_factory=lambda: InMemoryCache(name="models"))
    vectors: Optional[CachePort[Vector]] = None
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        if self.vectors is None:
            self.vectors = InMemoryCache(name="embeddings", max_size=self.config.vector_cache_size)

    def is_available(self) -> bool:
        return self.config.enabled and importlib.util.find_spec("transformers") is not None

    def _get_pipeline(self) -> Any:
        """Get or lazily load the feature-extraction pipeline.

        Raises:
            LayerUnavailableError: If the model cannot be loaded.
        """
        cache_key = f"pipeline:{self.config.embedding_model}"

        def load_pipeline() -> Any:
            self._logger.info(
                "Loading embedding model (lazy)",
                extra={"model": self.config.embedding_model},
            )
            try:
                from transformers import pipeline

                return pipeline("feature-extraction", model=self.config.embedding_model)
            except Exception as e:
                raise LayerUnavailableError(
                    f"Failed to load embedding model: {e}",
                    cause=e,
                    layer="similarity",
                )

        return self.cache.get_or_compute(cache_key, load_pipeline)

    def embed(self, text: str) -> Vector:
        def compute() -> Vector:
            output = self._get_pipeline()(text)
            # feature-extraction returns [batch][tokens][dim]
            return mean_pool(output[0])

        return self.vectors.get_or_compute(text.lower(), compute)

    def _rank(self, query: Vector, candidates: Sequence[Tuple[str, str]]) -> List[Tuple[float, str]]:
        scored = [
            (cosine_similarity(query, self.embed(description)), name)
            for name, description in candidates
        ]
        scored.sort(key=lambda item: (-item[0], item[1]))
        return scored

    def closest(self, phrase: str, top_k: int = 3) -> Optional[DestinationMatch]:
        """Return the destination whose embedding is closest to the phrase."""
        if not phrase.strip():
            return None
        query = self.embed(phrase)
        ranked = self._rank(query, [(p.name, p.description) for p in ALL_PLACES])
        kept = [(score, name) for score, name in ranked[:top_k] if score >= self.config.min_score]
        if not kept:
            return None
        return DestinationMatch(
            query=phrase,
            name=kept[0][1],
            score=kept[0][0],
            alternatives=tuple(name for _, name in kept[1:]),
        )

    def suggest(self, tags: Sequence[str], limit: int = 3) -> Sequence[str]:
        """Destinations whose name-and-tags description fits the interests."""
        if not tags:
            return []
        query = self.embed(" ".join(tags))
        ranked = self._rank(query, [(p.name, p.description) for p in CITIES])
        return [name for _, name in ranked[:limit]]

    def unload(self) -> Dict[str, int]:
        """Clear the cached pipeline and embeddings."""
        cleared = self.cache.clear()
        vectors = self.vectors.clear()
        self._logger.info(
            "Embedding model unloaded", extra={"cleared": cleared, "vectors": vectors}
        )
        return {"cleared": cleared, "vectors": vectors}

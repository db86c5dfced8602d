"""Similarity adapters - Implementations of the DestinationSimilarityPort.

Available implementations:
- FuzzyDestinationResolver: rapidfuzz over gazetteer names and aliases
- EmbeddingDestinationResolver: transformers feature-extraction embeddings
"""

from .embedding_resolver import EmbeddingDestinationResolver
from .fuzzy_resolver import FuzzyDestinationResolver

__all__ = ["EmbeddingDestinationResolver", "FuzzyDestinationResolver"]

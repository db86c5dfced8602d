"""Ports layer - Abstract interfaces (Protocols) for the resolver.

Ports define the contracts between the resolution core and the adapters
that implement caching, language-model completion, similarity lookup,
conversation summarization and pattern storage.
"""

from .cache import CachePort
from .completion import CompletionPort
from .patterns import PatternStorePort
from .sequence import SequenceContextPort
from .similarity import DestinationSimilarityPort

__all__ = [
    "CachePort",
    "CompletionPort",
    "DestinationSimilarityPort",
    "SequenceContextPort",
    "PatternStorePort",
]

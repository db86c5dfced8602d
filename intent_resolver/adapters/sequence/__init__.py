"""Sequence adapters - Implementations of the SequenceContextPort.

Available implementations:
- KeywordSequenceModel: Travel-vocabulary conversation summarizer
"""

from .keyword_model import KeywordSequenceModel

__all__ = ["KeywordSequenceModel"]

"""Sequence context port - Summarize a conversation into one signal."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import ContextSignal


class SequenceContextPort(Protocol):
    """Port for conversation summarization.

    The signal only adjusts overall confidence; it never supplies fields.

    Implementations:
    - adapters/sequence/keyword_model.py (KeywordSequenceModel)
    """

    def is_available(self) -> bool:
        """Return True when the model can be used."""
        ...

    def summarize(self, utterances: Sequence[str]) -> ContextSignal:
        """Summarize user utterances, oldest first.

        Args:
            utterances: User messages of the session including the current one.

        Returns:
            ContextSignal with a confidence in [0, 1].
        """
        ...

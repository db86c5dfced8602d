"""Completion adapter used when no language model is configured."""

from __future__ import annotations

from typing import Optional

from ...domain.errors import CompletionError


class NullCompletion:
    """Always unavailable; ``complete`` raises CompletionError."""

    def is_available(self) -> bool:
        return False

    def complete(self, prompt: str, timeout: Optional[float] = None) -> str:
        raise CompletionError("No completion backend configured")

"""Completion port - General-purpose text completion service.

Used only by the language-model fallback layer. Implementations must
honour the timeout they are given and must be safely skippable.
"""

from __future__ import annotations

from typing import Protocol


class CompletionPort(Protocol):
    """Port for a text-completion endpoint.

    Implementations:
    - adapters/completion/http_completion.py (HttpCompletionAdapter)
    - adapters/completion/null_completion.py (NullCompletion)
    """

    def is_available(self) -> bool:
        """Return True when the service is configured and may be called."""
        ...

    def complete(self, prompt: str, timeout: float) -> str:
        """Return the completion text for a prompt.

        Args:
            prompt: Full prompt text.
            timeout: Maximum seconds to wait for the service.

        Returns:
            Raw completion text.

        Raises:
            CompletionError: On transport errors, HTTP errors or empty replies.
        """
        ...

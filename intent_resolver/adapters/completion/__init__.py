"""Completion adapters - Implementations of the CompletionPort.

Available implementations:
- HttpCompletionAdapter: OpenAI-compatible chat-completions over HTTP
- NullCompletion: Always unavailable
"""

from .http_completion import HttpCompletionAdapter
from .null_completion import NullCompletion

__all__ = ["HttpCompletionAdapter", "NullCompletion"]

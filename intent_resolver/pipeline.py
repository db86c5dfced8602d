"""High-level entry point for the Trip Intent Resolver.

A caller keeps only the serialized context between turns:

    result = resolve("A week in Lisbon")
    result = resolve("starting June 3, for two", result.serialized_context)
    if result.can_generate:
        generate_itinerary(result.intent)

This module wires the default container; it holds no business logic.
"""

from __future__ import annotations

from typing import Optional

from .container import get_container
from .domain.models import ResolutionResult
from .services.conversation import ConversationService


def resolve(utterance: str, serialized_context: Optional[str] = None) -> ResolutionResult:
    """Resolve one utterance with the default container.

    Args:
        utterance: What the user just said.
        serialized_context: Context returned by the previous turn.

    Returns:
        ResolutionResult for this turn.
    """
    service: ConversationService = get_container().resolve(ConversationService)
    return service.resolve(utterance, serialized_context)


def run_pipeline() -> None:
    """Interactive demo: read utterances until the request is complete."""
    from .logging_setup import configure_logging

    configure_logging()
    context: Optional[str] = None
    print("Describe your trip (empty line to quit).")
    while True:
        try:
            utterance = input("> ")
        except EOFError:
            break
        if not utterance.strip():
            break
        result = resolve(utterance, context)
        context = result.serialized_context
        print(result.message)
        if result.can_generate:
            break


if __name__ == "__main__":
    run_pipeline()

"""Trip Intent Resolver.

Turns free-form travel requests into a structured trip specification
over a multi-turn conversation.
"""

from .domain.models import ConversationState, ResolutionResult, TripIntent
from .pipeline import resolve

__version__ = "0.1.0"

__all__ = ["ConversationState", "ResolutionResult", "TripIntent", "resolve", "__version__"]

"""Domain layer - Core models and errors.

This module contains the immutable domain models and typed errors used
throughout the resolver. No external dependencies.
"""

from .errors import (
    CompletionError,
    ConfigurationError,
    ContextDeserializationError,
    ExtractionError,
    IntentResolverError,
    LayerUnavailableError,
    MalformedInputError,
    PipelineError,
)
from .models import (
    Budget,
    BudgetTier,
    ConfidenceTier,
    ContextSignal,
    ConversationContext,
    ConversationState,
    Destination,
    DestinationMatch,
    FieldProvenance,
    FieldSource,
    LayerResult,
    LayerStatus,
    LearnedPattern,
    Message,
    ParseRecord,
    ResolutionResult,
    Role,
    TripIntent,
    TripType,
)

__all__ = [
    # Models
    "Budget",
    "BudgetTier",
    "ConfidenceTier",
    "ContextSignal",
    "ConversationContext",
    "ConversationState",
    "Destination",
    "DestinationMatch",
    "FieldProvenance",
    "FieldSource",
    "LayerResult",
    "LayerStatus",
    "LearnedPattern",
    "Message",
    "ParseRecord",
    "ResolutionResult",
    "Role",
    "TripIntent",
    "TripType",
    # Errors
    "IntentResolverError",
    "MalformedInputError",
    "ExtractionError",
    "LayerUnavailableError",
    "CompletionError",
    "ContextDeserializationError",
    "ConfigurationError",
    "PipelineError",
]

"""Services layer - Application orchestration.

This module contains the services that turn an utterance and a
conversation context into the next context and reply.

Available services:
- ConversationService: Per-session state machine (main entry point)
- ResolutionPipeline: Ordered resolution stages with concurrent layers
- IntentCache: Memoized lexical extraction
- LearningRecorder: Deferred writes to the pattern store
"""

from .conversation import ConversationService
from .intent_cache import IntentCache
from .learning import LearningRecorder
from .merge import Candidate, merge_turn, missing_required
from .resolution import PipelineOutcome, ResolutionPipeline, build_stages

__all__ = [
    "Candidate",
    "ConversationService",
    "IntentCache",
    "LearningRecorder",
    "PipelineOutcome",
    "ResolutionPipeline",
    "build_stages",
    "merge_turn",
    "missing_required",
]

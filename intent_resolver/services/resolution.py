"""Intent resolution pipeline.

One turn runs the deterministic stages in order (lexical extraction with
the intent cache, context enrichment, learned patterns, predictive
defaults), merging after each one so later stages see what is known.
The optional stages (destination similarity, sequence context) and the
language-model fallback then run concurrently, each bounded by a
timeout. A stage that fails, times out or is disabled yields an explicit
LayerResult and the turn goes on without it.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field, replace
from datetime import date
from statistics import mean
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from ..config import LLMConfig, PipelineConfig, get_config
from ..domain.models import (
    ConfidenceTier,
    ConversationContext,
    DestinationMatch,
    FieldSource,
    LayerResult,
    LayerStatus,
    TripIntent,
    INTENT_FIELDS,
)
from ..nlp.context import ContextEnricher
from ..nlp.learning import apply_learned_patterns
from ..nlp.lexical import LexicalExtractor
from ..nlp.llm_fallback import LanguageModelFallback
from ..nlp.predictive import PredictiveCompleter
from ..ports.patterns import PatternStorePort
from ..ports.sequence import SequenceContextPort
from ..ports.similarity import DestinationSimilarityPort
from .intent_cache import IntentCache
from .merge import (
    Candidate,
    apply_matches,
    combine_confidence,
    deterministic_confidence,
    internal_name,
    merge_turn,
    missing_required,
)


@dataclass
class TurnState:
    """Working state of one turn, shared by the stages.

    Attributes:
        text: Raw utterance
        today: Date of the request
        context: Conversation before this turn
        turn: Index of this turn
        require_travelers: Whether traveler count is a required field
        enriched_text: Utterance rewritten with borrowed context
        lexical: Fields stated by the raw utterance
        known: Previous intent merged with the candidates so far
        candidates: Layer outputs merged into the result
    """

    text: str
    today: date
    context: ConversationContext
    turn: int
    require_travelers: bool = True
    enriched_text: str = ""
    lexical: TripIntent = field(default_factory=TripIntent)
    known: TripIntent = field(default_factory=TripIntent)
    candidates: List[Candidate] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.enriched_text = self.enriched_text or self.text
        self.known = self.context.intent

    def add(self, candidate: Candidate) -> None:
        self.candidates.append(candidate)
        self.known = merge_turn(self.context.intent, self.candidates, self.turn)

    @property
    def missing(self) -> Tuple[str, ...]:
        return missing_required(self.known, self.require_travelers)


class Stage(Protocol):
    """One resolution layer.

    Attributes:
        name: Stage name used in logs, results and disabled_stages
        source: Field source of the values it supplies
        concurrent: Whether the stage runs on the worker pool
    """

    name: str
    source: FieldSource
    concurrent: bool

    def run(self, state: TurnState) -> LayerResult:
        ...


@dataclass
class LexicalStage:
    extractor: LexicalExtractor
    cache: IntentCache
    name: str = "lexical"
    source: FieldSource = FieldSource.LEXICAL
    concurrent: bool = False

    def run(self, state: TurnState) -> LayerResult:
        pending = state.context.pending_field
        intent = self.cache.get(state.text, state.today, pending)
        if intent is None:
            intent = self.extractor.extract(state.text, state.today, pending)
            self.cache.put(state.text, state.today, intent, pending)
        state.lexical = intent
        if not intent.present_fields():
            return LayerResult.absent(self.name, self.source)
        return LayerResult(self.name, self.source, LayerStatus.SUCCESS, intent=intent)


@dataclass
class ContextStage:
    """Borrow facts from earlier turns and extract what they add."""

    enricher: ContextEnricher
    extractor: LexicalExtractor
    name: str = "context"
    source: FieldSource = FieldSource.CONTEXT
    concurrent: bool = False

    def run(self, state: TurnState) -> LayerResult:
        enriched = self.enricher.enrich(state.text, state.context, state.lexical)
        state.enriched_text = enriched.text
        if not enriched.borrowed:
            return LayerResult.absent(self.name, self.source)
        extracted = self.extractor.extract(enriched.text, state.today)
        stated = [name for name in INTENT_FIELDS if state.lexical.has(name)]
        intent = extracted.without(*stated)
        if not intent.present_fields():
            return LayerResult.absent(self.name, self.source)
        return LayerResult(
            self.name,
            self.source,
            LayerStatus.SUCCESS,
            intent=intent,
            confidence=enriched.confidence.score,
        )


@dataclass
class PatternStage:
    """Soft values and suggestions from similar confirmed requests."""

    store: PatternStorePort
    limit: int = 3
    name: str = "patterns"
    source: FieldSource = FieldSource.PATTERN
    concurrent: bool = False

    def run(self, state: TurnState) -> LayerResult:
        neighbours = self.store.find_similar(state.enriched_text, self.limit)
        patterns = self.store.patterns()
        if not neighbours and not patterns:
            return LayerResult.absent(self.name, self.source)
        hints = apply_learned_patterns(state.enriched_text, state.known, neighbours, patterns)
        if not hints.intent.present_fields() and not hints.suggestions:
            return LayerResult.absent(self.name, self.source)
        return LayerResult(
            self.name,
            self.source,
            LayerStatus.SUCCESS,
            intent=hints.intent,
            suggestions=hints.suggestions,
        )


@dataclass
class PredictiveStage:
    completer: PredictiveCompleter
    name: str = "predictive"
    source: FieldSource = FieldSource.PREDICTIVE
    concurrent: bool = False

    def run(self, state: TurnState) -> LayerResult:
        prediction = self.completer.predict(state.known)
        if not prediction.intent.present_fields() and not prediction.suggestions:
            return LayerResult.absent(self.name, self.source)
        return LayerResult(
            self.name,
            self.source,
            LayerStatus.SUCCESS,
            intent=prediction.intent,
            suggestions=prediction.suggestions,
        )


@dataclass
class SimilarityStage:
    """Canonical names and alternates for the known destinations."""

    resolver: DestinationSimilarityPort
    top_k: int = 3
    name: str = "similarity"
    source: FieldSource = FieldSource.DERIVED
    concurrent: bool = True

    def run(self, state: TurnState) -> LayerResult:
        if not self.resolver.is_available():
            return LayerResult.skipped(self.name, self.source, "backend unavailable")
        matches: List[DestinationMatch] = []
        for destination in state.known.destinations:
            match = self.resolver.closest(destination.name, self.top_k)
            if match is not None:
                matches.append(match)
        if not matches:
            return LayerResult.absent(self.name, self.source)
        return LayerResult(
            self.name,
            self.source,
            LayerStatus.SUCCESS,
            confidence=mean(m.score for m in matches),
            matches=tuple(matches),
        )


@dataclass
class SequenceStage:
    """Conversation summary; only adjusts confidence."""

    model: SequenceContextPort
    name: str = "sequence"
    source: FieldSource = FieldSource.DERIVED
    concurrent: bool = True

    def run(self, state: TurnState) -> LayerResult:
        if not self.model.is_available():
            return LayerResult.skipped(self.name, self.source, "model unavailable")
        utterances = [m.text for m in state.context.user_messages] + [state.text]
        signal = self.model.summarize(utterances)
        return LayerResult(
            self.name,
            self.source,
            LayerStatus.SUCCESS,
            confidence=signal.confidence,
            signal=signal,
        )


@dataclass
class LanguageModelStage:
    """Fill required fields the deterministic stages left empty."""

    fallback: LanguageModelFallback
    timeout: Optional[float] = None
    name: str = "model"
    source: FieldSource = FieldSource.MODEL
    concurrent: bool = True

    def run(self, state: TurnState) -> LayerResult:
        missing = state.missing
        if not missing:
            return LayerResult.skipped(self.name, self.source, "nothing missing")
        if not self.fallback.is_available():
            return LayerResult.skipped(self.name, self.source, "completion service unavailable")
        intent = self.fallback.extract(state.enriched_text, state.today, missing)
        wanted = {internal_name(name) for name in missing}
        # Only gaps are filled; soft values of optional fields stay.
        taken = [name for name in INTENT_FIELDS if name not in wanted and state.known.has(name)]
        if taken:
            intent = intent.without(*taken)
        filled = [name for name in missing if intent.has(internal_name(name))]
        if not intent.present_fields():
            return LayerResult.absent(self.name, self.source)
        return LayerResult(
            self.name,
            self.source,
            LayerStatus.SUCCESS,
            intent=intent,
            confidence=len(filled) / len(missing),
        )


CANDIDATE_CONFIDENCE: Dict[FieldSource, ConfidenceTier] = {
    FieldSource.LEXICAL: ConfidenceTier.HIGH,
    FieldSource.CONTEXT: ConfidenceTier.MEDIUM,
    FieldSource.PATTERN: ConfidenceTier.LOW,
    FieldSource.PREDICTIVE: ConfidenceTier.LOW,
    FieldSource.MODEL: ConfidenceTier.LOW,
}


@dataclass(frozen=True, slots=True)
class PipelineOutcome:
    """Merged intent of one turn and the result of every stage."""

    intent: TripIntent
    results: Tuple[LayerResult, ...]
    enriched_text: str


@dataclass
class ResolutionPipeline:
    """Ordered resolution stages with concurrent optional layers.

    Attributes:
        stages: Stages in execution order
        config: Disabled stages, timeouts, weights and thresholds
    """

    stages: Sequence[Stage]
    config: PipelineConfig = field(default_factory=lambda: get_config().pipeline)
    _executor: ThreadPoolExecutor = field(init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="resolution"
        )

    @property
    def weights(self) -> Dict[str, float]:
        return {
            "deterministic": self.config.deterministic_weight,
            "model": self.config.model_weight,
            "similarity": self.config.embedding_weight,
            "sequence": self.config.sequence_weight,
        }

    def run(
        self,
        text: str,
        context: ConversationContext,
        today: date,
        turn: int,
        require_travelers: bool = True,
    ) -> PipelineOutcome:
        """Resolve one utterance against the conversation so far.

        Args:
            text: Raw utterance (already validated as non-empty).
            context: Conversation before this turn.
            today: Date of the request.
            turn: Index of this turn.
            require_travelers: Whether traveler count is required.

        Returns:
            PipelineOutcome with the merged intent and per-stage results.
        """
        state = TurnState(text, today, context, turn, require_travelers)
        results: List[LayerResult] = []

        for stage in self.stages:
            if stage.concurrent:
                continue
            result = self._run_guarded(stage, state)
            results.append(result)
            self._accept(state, result)

        submitted = time.monotonic()
        starts: Dict[str, float] = {}
        pending: List[Tuple[Stage, threading.Event, Future]] = []
        for stage in self.stages:
            if not stage.concurrent:
                continue
            if stage.name in self.config.disabled_stages:
                results.append(LayerResult.skipped(stage.name, stage.source, "disabled"))
                continue
            begun = threading.Event()
            future = self._executor.submit(self._run_started, stage, state, begun, starts)
            pending.append((stage, begun, future))

        for stage, begun, future in pending:
            results.append(self._await(stage, begun, future, starts, submitted))

        # Model values are merged after every deterministic value is known.
        for result in results:
            if result.layer == "model":
                self._accept(state, result)

        intent = state.known
        suggestions: List[str] = []
        for result in results:
            if result.matches:
                intent, alternates = apply_matches(intent, result.matches)
                suggestions.extend(alternates)
            suggestions.extend(result.suggestions)

        deterministic = deterministic_confidence(
            intent, self.config.high_threshold, self.config.medium_threshold
        )
        score = combine_confidence(deterministic, results, self.weights)
        intent = _with_confidence(
            intent,
            score,
            ConfidenceTier.from_score(score, self.config.high_threshold, self.config.medium_threshold),
            tuple(dict.fromkeys(suggestions)),
        )

        self._logger.info(
            "Turn resolved",
            extra={
                "session_id": context.session_id,
                "turn": turn,
                "fields": list(intent.present_fields()),
                "layers": {r.layer: r.status.value for r in results},
                "confidence": round(score, 3),
            },
        )
        return PipelineOutcome(intent=intent, results=tuple(results), enriched_text=state.enriched_text)

    def _run_started(
        self, stage: Stage, state: TurnState, begun: threading.Event, starts: Dict[str, float]
    ) -> LayerResult:
        starts[stage.name] = time.monotonic()
        begun.set()
        return self._run_guarded(stage, state)

    def _await(
        self,
        stage: Stage,
        begun: threading.Event,
        future: Future,
        starts: Dict[str, float],
        submitted: float,
    ) -> LayerResult:
        # Time spent queued behind other turns is not charged to the stage.
        queue_limit = self.config.layer_timeout_seconds
        if not begun.wait(max(0.0, submitted + queue_limit - time.monotonic())):
            future.cancel()
            self._logger.warning(
                "Stage never started, continuing without it",
                extra={"stage": stage.name, "queue_timeout_seconds": queue_limit},
            )
            return LayerResult.failed(stage.name, stage.source, f"not started within {queue_limit}s")

        timeout = getattr(stage, "timeout", None) or self.config.layer_timeout_seconds
        remaining = max(0.0, starts[stage.name] + timeout - time.monotonic())
        try:
            return future.result(timeout=remaining)
        except FutureTimeoutError:
            self._logger.warning(
                "Stage timed out, continuing without it",
                extra={"stage": stage.name, "timeout_seconds": timeout},
            )
            return LayerResult.failed(stage.name, stage.source, f"timed out after {timeout}s")

    def _run_guarded(self, stage: Stage, state: TurnState) -> LayerResult:
        if stage.name in self.config.disabled_stages:
            return LayerResult.skipped(stage.name, stage.source, "disabled")
        try:
            result = stage.run(state)
        except Exception as e:
            self._logger.warning(
                "Stage failed, continuing without it",
                extra={"stage": stage.name, "error": str(e), "error_type": type(e).__name__},
            )
            return LayerResult.failed(stage.name, stage.source, str(e))
        if result.status != LayerStatus.SUCCESS:
            self._logger.debug(
                "Stage produced nothing",
                extra={"stage": stage.name, "status": result.status.value, "reason": result.error},
            )
        return result

    @staticmethod
    def _accept(state: TurnState, result: LayerResult) -> None:
        if result.succeeded and result.intent is not None and result.intent.present_fields():
            state.add(
                Candidate(
                    result.intent,
                    result.source,
                    CANDIDATE_CONFIDENCE.get(result.source, ConfidenceTier.MEDIUM),
                )
            )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def _with_confidence(
    intent: TripIntent,
    score: float,
    tier: ConfidenceTier,
    suggestions: Tuple[str, ...],
) -> TripIntent:
    return replace(intent, confidence=tier, confidence_score=round(score, 3), suggestions=suggestions)


def build_stages(
    lexical: LexicalExtractor,
    cache: IntentCache,
    enricher: ContextEnricher,
    store: Optional[PatternStorePort],
    completer: PredictiveCompleter,
    similarity: Optional[DestinationSimilarityPort],
    sequence: Optional[SequenceContextPort],
    fallback: Optional[LanguageModelFallback],
    llm_config: Optional[LLMConfig] = None,
    similar_limit: int = 3,
    top_k: int = 3,
) -> List[Stage]:
    """Stages in their standard order; absent collaborators are left out."""
    stages: List[Stage] = [LexicalStage(lexical, cache), ContextStage(enricher, lexical)]
    if store is not None:
        stages.append(PatternStage(store, similar_limit))
    stages.append(PredictiveStage(completer))
    if similarity is not None:
        stages.append(SimilarityStage(similarity, top_k))
    if sequence is not None:
        stages.append(SequenceStage(sequence))
    if fallback is not None:
        timeout = (llm_config or fallback.config).timeout_seconds
        stages.append(LanguageModelStage(fallback, timeout=timeout))
    return stages

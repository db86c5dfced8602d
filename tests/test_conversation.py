"""End-to-end tests for the conversation state machine and the pipeline."""

import itertools
import os
import sys
import time
from dataclasses import dataclass
from typing import Optional
from datetime import date, datetime, timezone
from unittest.mock import Mock

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from intent_resolver.adapters.cache import NullCache
from intent_resolver.adapters.completion import NullCompletion
from intent_resolver.adapters.patterns import InMemoryPatternStore
from intent_resolver.adapters.sequence import KeywordSequenceModel
from intent_resolver.adapters.similarity import FuzzyDestinationResolver
from intent_resolver.config import (
    ConversationConfig,
    ExtractionConfig,
    LearningConfig,
    LLMConfig,
    PipelineConfig,
    SequenceConfig,
    SimilarityConfig,
)
from intent_resolver.container import reset_container
from intent_resolver.domain.errors import CompletionError
from intent_resolver.domain.models import (
    ConversationContext,
    ConversationState,
    FieldSource,
    LayerResult,
    LayerStatus,
)
from intent_resolver.nlp import ContextEnricher, LanguageModelFallback, LexicalExtractor, PredictiveCompleter
from intent_resolver.pipeline import resolve
from intent_resolver.serialization import deserialize_context
from intent_resolver.services import ConversationService, IntentCache, LearningRecorder, ResolutionPipeline, build_stages
from intent_resolver.services.questions import LOST_CONTEXT_PREFIX, MALFORMED_PROMPT, RETRY_PROMPT

# A Wednesday
NOW = datetime(2026, 10, 14, 9, 0, tzinfo=timezone.utc)


class FakeCompletion:
    """Completion backend returning a canned reply, optionally slowly."""

    def __init__(self, reply="{}", delay=0.0, error=None):
        self.reply = reply
        self.delay = delay
        self.error = error
        self.prompts = []

    def is_available(self):
        return True

    def complete(self, prompt, timeout=None):
        self.prompts.append(prompt)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


def make_pipeline(completion=None, store=None, llm=None, disabled=(), timeout=5.0):
    extraction = ExtractionConfig()
    llm = llm or LLMConfig(enabled=completion is not None, timeout_seconds=2.0)
    lexical = LexicalExtractor(extraction)
    stages = build_stages(
        lexical=lexical,
        cache=IntentCache(NullCache(), enabled=False),
        enricher=ContextEnricher(),
        store=store,
        completer=PredictiveCompleter(extraction),
        similarity=FuzzyDestinationResolver(SimilarityConfig()),
        sequence=KeywordSequenceModel(SequenceConfig()),
        fallback=LanguageModelFallback(completion or NullCompletion(), llm, extraction),
        llm_config=llm,
    )
    config = PipelineConfig(disabled_stages=list(disabled), layer_timeout_seconds=timeout)
    return ResolutionPipeline(stages, config)


def make_service(pipeline=None, recorder=None, config=None):
    counter = itertools.count(1)
    return ConversationService(
        pipeline=pipeline or make_pipeline(),
        recorder=recorder,
        config=config or ConversationConfig(),
        clock=lambda: NOW,
        id_factory=lambda: f"session-{next(counter)}",
    )


def converse(service, *utterances):
    results = []
    context = None
    for utterance in utterances:
        result = service.resolve(utterance, context)
        context = result.serialized_context
        results.append(result)
    return results


def assert_generation_gate(result):
    expected = result.state == ConversationState.READY_TO_GENERATE and not result.missing_fields
    assert result.can_generate == expected


@pytest.fixture
def service():
    return make_service()


class TestThreeTurnConversation:
    @pytest.fixture
    def results(self, service):
        return converse(service, "I want to go to Paris", "next weekend, 3 days", "2 adults, mid-range budget")

    def test_first_turn_asks_for_date(self, results):
        first = results[0]
        assert first.message == "When would you like to visit Paris?"
        assert first.state == ConversationState.COLLECTING_DATE
        assert first.missing_fields == ("startDate", "duration", "travelerCount")
        assert first.intent.destination_names == ("Paris",)
        assert not first.can_generate

    def test_second_turn_asks_for_travelers(self, results):
        second = results[1]
        assert second.message == "Great! A 3-day trip to Paris. How many people will be traveling?"
        assert second.state == ConversationState.COLLECTING_TRAVELERS
        assert second.intent.start_date == date(2026, 10, 24)
        assert second.intent.duration_days == 3
        assert second.intent.destination_names == ("Paris",)

    def test_third_turn_is_ready(self, results):
        third = results[2]
        assert third.state == ConversationState.READY_TO_GENERATE
        assert third.can_generate
        assert third.missing_fields == ()
        intent = third.intent
        assert intent.destination_names == ("Paris",)
        assert intent.start_date == date(2026, 10, 24)
        assert intent.resolved_duration == 3
        assert intent.traveler_count == 2
        assert intent.budget.tier.value == "moderate"
        assert third.message.startswith("Perfect! Let me confirm the details:")
        assert "• Starting: October 24, 2026" in third.message
        assert "• Travelers: 2 travelers" in third.message

    def test_session_is_stable(self, results):
        assert {r.session_id for r in results} == {"session-1"}

    def test_history_and_counters(self, results):
        context = deserialize_context(results[-1].serialized_context)
        assert context.turn == 3
        assert len(context.messages) == 6
        assert context.ask_counts == {"startDate": 1, "travelerCount": 1}
        assert context.pending_field is None

    def test_generation_gate(self, results):
        for result in results:
            assert_generation_gate(result)


class TestFollowUps:
    def test_destinations_accumulate(self, service):
        _, second = converse(service, "I want to visit London", "Paris too")
        assert second.intent.destination_names == ("London", "Paris")

    def test_duration_survives_an_added_destination(self, service):
        _, second = converse(service, "3 days in London", "Paris too")
        assert second.intent.destination_names == ("London", "Paris")
        assert second.intent.duration_days == 3
        assert second.intent.source_of("duration_days") == FieldSource.LEXICAL

    def test_reference_to_earlier_destination(self, service):
        _, second = converse(service, "I'm thinking about Rome", "I want to go there next month for 4 days")
        assert second.intent.destination_names == ("Rome",)
        assert second.intent.start_date == date(2026, 11, 14)
        assert second.intent.duration_days == 4
        assert second.missing_fields == ("travelerCount",)

    def test_restated_duration_wins(self, service):
        _, second = converse(service, "Paris for 3 days", "actually make it 5 days")
        assert second.intent.duration_days == 5
        assert second.intent.destinations[0].days == 5

    def test_bare_answer_to_question(self, service):
        results = converse(service, "Lisbon starting December 1", "6", "3")
        assert results[1].intent.duration_days == 6
        assert results[2].intent.traveler_count == 3
        assert results[2].can_generate

    def test_repeated_question_gets_tip(self, service):
        results = converse(service, "hello", "hmm", "not sure")
        assert results[0].message == "Where would you like to travel?"
        assert results[1].message == "What destination do you have in mind?"
        assert "Popular destinations include" in results[2].message

    def test_single_turn_request(self, service):
        (result,) = converse(service, "Trip to Lisbon starting monday for 5 days, solo")
        assert result.intent.start_date == date(2026, 10, 19)
        assert result.intent.traveler_count == 1
        assert result.can_generate

    def test_family_default_is_only_a_hint(self, service):
        (result,) = converse(service, "Family trip to Barcelona starting May 2 for a week")
        assert result.intent.traveler_count == 4
        assert result.intent.source_of("traveler_count") == FieldSource.PREDICTIVE
        assert result.missing_fields == ("travelerCount",)
        assert "Is it 4 of you?" in result.message
        assert not result.can_generate

    def test_travelers_optional(self):
        service = make_service(config=ConversationConfig(require_travelers=False))
        (result,) = converse(service, "Rome for 4 days starting March 3")
        assert result.state == ConversationState.READY_TO_GENERATE
        assert result.can_generate

    def test_history_is_capped(self):
        service = make_service(config=ConversationConfig(max_messages=4))
        results = converse(service, "hello", "Rome", "next week")
        context = deserialize_context(results[-1].serialized_context)
        assert len(context.messages) == 4
        assert context.messages[0].text == "Rome"


class TestDeterminism:
    def test_same_inputs_same_results(self):
        utterances = ("I want to go to Paris", "next weekend, 3 days", "2 adults")
        first = [r.to_dict() for r in converse(make_service(), *utterances)]
        second = [r.to_dict() for r in converse(make_service(), *utterances)]
        assert first == second


class TestBadInput:
    @pytest.mark.parametrize("utterance", ["", "   ", None, 42, "x" * 2001])
    def test_malformed_utterance_keeps_context(self, service, utterance):
        (first,) = converse(service, "I want to go to Paris")
        result = service.resolve(utterance, first.serialized_context)
        assert result.message == MALFORMED_PROMPT
        assert result.serialized_context == first.serialized_context
        assert result.state == first.state

    def test_corrupted_context_starts_over(self, service):
        result = service.resolve("A week in Rome", "garbage!!")
        assert result.message.startswith(LOST_CONTEXT_PREFIX)
        assert result.intent.destination_names == ("Rome",)
        assert deserialize_context(result.serialized_context).turn == 1

    def test_unexpected_failure_enters_error_state(self):
        pipeline = Mock()
        pipeline.run.side_effect = RuntimeError("boom")
        service = make_service(pipeline=pipeline)
        result = service.resolve("Paris")
        assert result.state == ConversationState.ERROR
        assert result.message == RETRY_PROMPT
        assert not result.can_generate

    def test_error_state_recovers(self, service):
        failing = make_service(pipeline=Mock(run=Mock(side_effect=RuntimeError("boom"))))
        broken = failing.resolve("Paris")
        result = service.resolve("A week in Rome from May 3 for two", broken.serialized_context)
        assert result.state == ConversationState.READY_TO_GENERATE


class TestLanguageModelLayer:
    def test_fills_a_missing_field(self):
        completion = FakeCompletion('{"startDate": "2026-11-02", "duration": null}')
        service = make_service(make_pipeline(completion))
        (result,) = converse(service, "I want to go to Paris around my birthday")
        assert result.intent.start_date == date(2026, 11, 2)
        assert result.intent.source_of("start_date") == FieldSource.MODEL
        assert result.missing_fields == ("duration", "travelerCount")
        assert "Still unknown: startDate, duration, travelerCount." in completion.prompts[0]

    def test_model_answer_replaces_a_soft_default(self):
        completion = FakeCompletion('{"startDate": "2026-11-02", "duration": 4, "travelerCount": 3}')
        service = make_service(make_pipeline(completion))
        (result,) = converse(service, "I want to go to Paris around my birthday")
        assert result.intent.duration_days == 4
        assert result.intent.source_of("duration_days") == FieldSource.MODEL
        assert result.intent.traveler_count == 3
        assert result.missing_fields == ()
        assert result.state == ConversationState.READY_TO_GENERATE

    def test_model_answers_the_family_head_count(self):
        completion = FakeCompletion('{"travelerCount": 3}')
        service = make_service(make_pipeline(completion))
        (result,) = converse(service, "Family trip to Rome starting monday for 5 days")
        assert result.intent.traveler_count == 3
        assert result.intent.source_of("traveler_count") == FieldSource.MODEL
        assert result.missing_fields == ()
        assert result.can_generate

    def test_model_leaves_optional_soft_values_alone(self):
        completion = FakeCompletion('{"startDate": "2026-11-02", "budget": {"amount": 99999, "currency": "USD"}}')
        service = make_service(make_pipeline(completion))
        (result,) = converse(service, "I want to go to Paris around my birthday")
        assert result.intent.source_of("budget") == FieldSource.PREDICTIVE
        assert result.intent.budget.amount != 99999

    def test_not_called_when_nothing_is_missing(self):
        completion = FakeCompletion()
        service = make_service(make_pipeline(completion))
        converse(service, "Trip to Lisbon starting monday for 5 days, solo")
        assert completion.prompts == []

    def test_failure_degrades_gracefully(self):
        completion = FakeCompletion(error=CompletionError("HTTP 500", status_code=500))
        service = make_service(make_pipeline(completion))
        (result,) = converse(service, "I want to go to Paris")
        assert result.message == "When would you like to visit Paris?"
        assert result.state == ConversationState.COLLECTING_DATE

    def test_timeout_degrades_gracefully(self):
        completion = FakeCompletion('{"startDate": "2026-11-02"}', delay=1.0)
        llm = LLMConfig(enabled=True, timeout_seconds=0.1)
        service = make_service(make_pipeline(completion, llm=llm))
        started = time.monotonic()
        (result,) = converse(service, "I want to go to Paris")
        assert time.monotonic() - started < 0.9
        assert result.intent.start_date is None
        assert result.state == ConversationState.COLLECTING_DATE


class TestLearning:
    def test_ready_sessions_are_recorded_once(self):
        store = InMemoryPatternStore(LearningConfig())
        recorder = LearningRecorder(store)
        service = make_service(make_pipeline(store=store), recorder=recorder)
        converse(service, "Trip to Lisbon starting monday for 5 days, solo", "yes")
        recorder.flush(timeout=5)
        history = store.history()
        assert len(history) == 1
        assert history[0].destinations == ("Lisbon",)
        assert history[0].duration_days == 5
        recorder.shutdown()


@dataclass
class BrokenStage:
    name: str = "similarity"
    source: FieldSource = FieldSource.DERIVED
    concurrent: bool = True

    def run(self, state):
        raise RuntimeError("index missing")


@dataclass
class SleepyStage:
    name: str = "sequence"
    delay: float = 0.0
    timeout: Optional[float] = None
    source: FieldSource = FieldSource.DERIVED
    concurrent: bool = True

    def run(self, state):
        time.sleep(self.delay)
        return LayerResult(self.name, self.source, LayerStatus.SUCCESS)


class TestPipeline:
    @pytest.fixture
    def context(self):
        return ConversationContext(session_id="s", created_at=NOW, updated_at=NOW)

    def statuses(self, outcome):
        return {r.layer: r.status for r in outcome.results}

    def test_layer_results_are_explicit(self, context):
        outcome = make_pipeline().run("Rome for 4 days", context, NOW.date(), 1)
        statuses = self.statuses(outcome)
        assert statuses["lexical"] == LayerStatus.SUCCESS
        assert statuses["context"] == LayerStatus.ABSENT
        assert statuses["similarity"] == LayerStatus.SUCCESS
        assert statuses["sequence"] == LayerStatus.SUCCESS
        assert statuses["model"] == LayerStatus.SKIPPED

    def test_disabled_stages_are_skipped(self, context):
        pipeline = make_pipeline(disabled=("similarity", "sequence", "predictive"))
        outcome = pipeline.run("Rome", context, NOW.date(), 1)
        statuses = self.statuses(outcome)
        assert statuses["similarity"] == LayerStatus.SKIPPED
        assert statuses["sequence"] == LayerStatus.SKIPPED
        assert statuses["predictive"] == LayerStatus.SKIPPED
        assert outcome.intent.duration_days is None

    def test_failing_stage_does_not_abort(self, context):
        pipeline = ResolutionPipeline(
            [make_pipeline().stages[0], BrokenStage()], PipelineConfig()
        )
        outcome = pipeline.run("Rome for 4 days", context, NOW.date(), 1)
        broken = [r for r in outcome.results if r.layer == "similarity"][0]
        assert broken.status == LayerStatus.ERROR
        assert "index missing" in broken.error
        assert outcome.intent.destination_names == ("Rome",)

    def test_queue_time_does_not_count_against_a_stage(self, context):
        config = PipelineConfig(max_workers=1, layer_timeout_seconds=2.0)
        pipeline = ResolutionPipeline(
            [
                make_pipeline().stages[0],
                SleepyStage(name="similarity", delay=0.3),
                SleepyStage(name="model", timeout=0.2),
            ],
            config,
        )
        outcome = pipeline.run("Rome", context, NOW.date(), 1)
        assert self.statuses(outcome)["model"] == LayerStatus.SUCCESS

    def test_stage_that_never_starts_is_reported(self, context):
        config = PipelineConfig(max_workers=1, layer_timeout_seconds=0.2)
        pipeline = ResolutionPipeline(
            [
                make_pipeline().stages[0],
                SleepyStage(name="similarity", delay=1.0, timeout=0.3),
                SleepyStage(name="model"),
            ],
            config,
        )
        outcome = pipeline.run("Rome", context, NOW.date(), 1)
        model = [r for r in outcome.results if r.layer == "model"][0]
        assert model.status == LayerStatus.ERROR
        assert "not started" in model.error

    def test_confidence_is_reported(self, context):
        outcome = make_pipeline().run(
            "Rome for 4 days starting March 3 for two", context, NOW.date(), 1
        )
        assert 0.0 < outcome.intent.confidence_score <= 1.0
        assert outcome.intent.confidence.value in ("high", "medium", "low")

    def test_misspelled_destination_is_canonicalized(self, context):
        outcome = make_pipeline().run("I want to travel to Barcelonna", context, NOW.date(), 1)
        assert outcome.intent.destination_names == ("Barcelona",)


class TestEntryPoint:
    @pytest.fixture(autouse=True)
    def clean_container(self):
        reset_container()
        yield
        reset_container()

    def test_resolve_with_default_container(self):
        first = resolve("A week in Lisbon")
        assert first.intent.destination_names == ("Lisbon",)
        assert first.intent.duration_days == 7
        second = resolve("for two", first.serialized_context)
        assert second.session_id == first.session_id
        assert second.intent.traveler_count == 2
        payload = second.to_dict()
        assert payload["intent"]["duration"] == 7
        assert payload["missingFields"] == ["startDate"]

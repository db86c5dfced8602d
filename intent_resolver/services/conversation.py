"""Conversation service - the per-session state machine.

Each call to ``resolve`` is one turn: restore the context from its
serialized form, run the resolution pipeline on the new utterance,
decide the next state from the required fields that are still missing,
and return the reply together with the new serialized context.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from ..config import ConversationConfig, get_config
from ..domain.errors import ContextDeserializationError, MalformedInputError, PipelineError
from ..domain.models import (
    ConversationContext,
    ConversationState,
    Message,
    ResolutionResult,
    Role,
    TripIntent,
)
from ..serialization import deserialize_context, serialize_context
from .learning import LearningRecorder
from .merge import internal_name, missing_required
from .questions import (
    LOST_CONTEXT_PREFIX,
    MALFORMED_PROMPT,
    RETRY_PROMPT,
    clarifying_question,
    confirmation_message,
)
from .resolution import ResolutionPipeline

STATE_FOR_FIELD: Dict[str, ConversationState] = {
    "destination": ConversationState.COLLECTING_DESTINATION,
    "startDate": ConversationState.COLLECTING_DATE,
    "duration": ConversationState.COLLECTING_DURATION,
    "travelerCount": ConversationState.COLLECTING_TRAVELERS,
}

MAX_UTTERANCE_LENGTH = 2000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return uuid.uuid4().hex


def validate_utterance(utterance: object) -> str:
    """Return the stripped utterance.

    Raises:
        MalformedInputError: If it is not text, blank, or too long.
    """
    if not isinstance(utterance, str):
        raise MalformedInputError("Utterance must be a string")
    text = utterance.strip()
    if not text:
        raise MalformedInputError("Utterance is empty")
    if len(text) > MAX_UTTERANCE_LENGTH:
        raise MalformedInputError(f"Utterance longer than {MAX_UTTERANCE_LENGTH} characters")
    return text


@dataclass
class ConversationService:
    """Turn-by-turn resolution of a travel request.

    The service holds no per-session state; everything about a session
    lives in the ConversationContext passed in and returned. Given the
    same context, utterance and clock it produces the same result.

    Attributes:
        pipeline: Resolution pipeline run on every turn
        recorder: Learning recorder fed when a session becomes ready
        config: Required fields and history cap
        clock: Current time (injected for tests)
        id_factory: Session id generator (injected for tests)
    """

    pipeline: ResolutionPipeline
    recorder: Optional[LearningRecorder] = None
    config: ConversationConfig = field(default_factory=lambda: get_config().conversation)
    clock: Callable[[], datetime] = utc_now
    id_factory: Callable[[], str] = new_session_id
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def new_context(self, now: Optional[datetime] = None) -> ConversationContext:
        now = now or self.clock()
        return ConversationContext(session_id=self.id_factory(), created_at=now, updated_at=now)

    def resolve(self, utterance: str, serialized_context: Optional[str] = None) -> ResolutionResult:
        """Process one user utterance.

        Args:
            utterance: What the user just said.
            serialized_context: Context returned by the previous turn, or
                None to start a new session.

        Returns:
            ResolutionResult with the reply, the accumulated intent, the
            missing required fields and the new serialized context.
        """
        now = self.clock()
        prefix = ""
        context = self._restore(serialized_context, now)
        if context is None:
            context = self.new_context(now)
            prefix = LOST_CONTEXT_PREFIX

        try:
            text = validate_utterance(utterance)
        except MalformedInputError as e:
            self._logger.info(
                "Malformed utterance, asking again",
                extra={"session_id": context.session_id, "reason": e.message},
            )
            return self._result(_prefixed(prefix, MALFORMED_PROMPT), context)

        try:
            updated, message = self._turn(context, text, now)
        except Exception as e:
            self._logger.error(
                "Unexpected failure while resolving turn",
                extra={
                    "session_id": context.session_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            message = RETRY_PROMPT
            updated = replace(
                context,
                state=ConversationState.ERROR,
                messages=self._capped(context.messages, text, message, now),
                updated_at=now,
            )

        return self._result(_prefixed(prefix, message), updated)

    def _restore(self, serialized: Optional[str], now: datetime) -> Optional[ConversationContext]:
        if not serialized:
            return self.new_context(now)
        try:
            return deserialize_context(serialized)
        except ContextDeserializationError as e:
            self._logger.warning(
                "Could not restore conversation context, starting over",
                extra={"error": str(e)},
            )
            return None

    def _turn(self, context: ConversationContext, text: str, now: datetime) -> Tuple[ConversationContext, str]:
        turn = context.turn + 1
        outcome = self.pipeline.run(
            text, context, now.date(), turn, self.config.require_travelers
        )
        intent = outcome.intent
        missing = missing_required(intent, self.config.require_travelers)
        ask_counts = dict(context.ask_counts)

        if missing:
            asked = missing[0]
            message = clarifying_question(asked, intent, ask_counts.get(asked, 0))
            ask_counts[asked] = ask_counts.get(asked, 0) + 1
            state = STATE_FOR_FIELD[asked]
            pending: Optional[str] = internal_name(asked)
        elif not intent.is_complete:
            raise PipelineError("Required fields present but intent incomplete", stage="merge")
        else:
            message = confirmation_message(intent)
            state = ConversationState.READY_TO_GENERATE
            pending = None
            if self.recorder is not None and context.state != ConversationState.READY_TO_GENERATE:
                self.recorder.submit(outcome.enriched_text, intent, now)

        self._logger.info(
            "Conversation state updated",
            extra={
                "session_id": context.session_id,
                "turn": turn,
                "from_state": context.state.value,
                "to_state": state.value,
                "missing": list(missing),
            },
        )

        updated = replace(
            context,
            intent=intent,
            state=state,
            pending_field=pending,
            ask_counts=ask_counts,
            turn=turn,
            messages=self._capped(context.messages, text, message, now),
            updated_at=now,
        )
        return updated, message

    def _capped(
        self,
        messages: Tuple[Message, ...],
        text: str,
        reply: str,
        now: datetime,
    ) -> Tuple[Message, ...]:
        history = messages + (Message(Role.USER, text, now), Message(Role.ASSISTANT, reply, now))
        return history[-self.config.max_messages:]

    def _result(self, message: str, context: ConversationContext) -> ResolutionResult:
        intent: TripIntent = context.intent
        missing = missing_required(intent, self.config.require_travelers)
        can_generate = (
            context.state == ConversationState.READY_TO_GENERATE
            and not missing
            and intent.is_complete
        )
        return ResolutionResult(
            message=message,
            intent=intent,
            missing_fields=missing,
            can_generate=can_generate,
            serialized_context=serialize_context(context),
            state=context.state,
            session_id=context.session_id,
        )


def _prefixed(prefix: str, message: str) -> str:
    return f"{prefix} {message}" if prefix else message

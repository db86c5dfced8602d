"""Typed domain errors for the Trip Intent Resolver.

Layers never signal "nothing found" with exceptions; these errors are
for real failures, and each one can wrap the root cause for debugging.

All errors inherit from IntentResolverError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class IntentResolverError(Exception):
    """Base error for the intent resolver domain.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class MalformedInputError(IntentResolverError):
    """The utterance is empty or cannot be processed at all."""


@dataclass
class ExtractionError(IntentResolverError):
    """A resolution layer failed while extracting fields.

    Attributes:
        layer: Name of the layer that failed
        fallback_attempted: Whether a fallback layer was tried
    """

    layer: str = ""
    fallback_attempted: bool = False


@dataclass
class LayerUnavailableError(IntentResolverError):
    """An optional layer was asked to run but its backend is absent.

    Attributes:
        layer: Name of the unavailable layer
    """

    layer: str = ""


@dataclass
class CompletionError(IntentResolverError):
    """The text-completion service failed or returned garbage.

    Attributes:
        status_code: HTTP status code, if the failure was an HTTP error
    """

    status_code: Optional[int] = None


@dataclass
class ContextDeserializationError(IntentResolverError):
    """A serialized conversation context could not be restored."""


@dataclass
class ConfigurationError(IntentResolverError):
    """Invalid or missing configuration.

    Attributes:
        setting_name: Name of the problematic setting
        expected_type: Expected type or format
    """

    setting_name: str = ""
    expected_type: Optional[str] = None


@dataclass
class PipelineError(IntentResolverError):
    """Unrecoverable failure inside the resolution pipeline.

    Attributes:
        stage: Stage that was running when the failure happened
    """

    stage: str = ""

"""Opaque string form of a ConversationContext.

The context is dumped to JSON with a pydantic TypeAdapter and wrapped in
URL-safe base64, so callers can carry it in a header, a cookie or a
query parameter and hand it back unchanged on the next turn.
"""

from __future__ import annotations

import base64
import binascii
from functools import lru_cache

from pydantic import TypeAdapter, ValidationError

from .domain.errors import ContextDeserializationError
from .domain.models import ConversationContext

SCHEMA_VERSION = 1


@lru_cache(maxsize=1)
def _adapter() -> TypeAdapter[ConversationContext]:
    return TypeAdapter(ConversationContext)


def serialize_context(context: ConversationContext) -> str:
    """Encode a context as a URL-safe base64 JSON string."""
    payload = _adapter().dump_json(context)
    return base64.urlsafe_b64encode(payload).decode("ascii")


def deserialize_context(serialized: str) -> ConversationContext:
    """Restore a context produced by serialize_context.

    Raises:
        ContextDeserializationError: If the string is not valid base64,
            not a valid context, or from another schema version.
    """
    try:
        payload = base64.urlsafe_b64decode(serialized.encode("ascii"))
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise ContextDeserializationError("Serialized context is not valid base64", cause=e)

    try:
        context = _adapter().validate_json(payload)
    except ValidationError as e:
        raise ContextDeserializationError("Serialized context is not a valid conversation", cause=e)

    if context.version != SCHEMA_VERSION:
        raise ContextDeserializationError(
            f"Unsupported context version {context.version} (expected {SCHEMA_VERSION})"
        )
    return context

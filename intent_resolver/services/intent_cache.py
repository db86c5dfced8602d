"""Intent cache - memoized lexical extraction.

Keys are the normalized utterance (trimmed, whitespace collapsed, case
kept) scoped to the resolution date and the pending field, so a
cached "next weekend" never outlives the day it was resolved on.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from ..domain.models import TripIntent
from ..ports.cache import CachePort


def normalize_text(text: str) -> str:
    # Case is kept: capitalization decides what the extractor reads as a name.
    return re.sub(r"\s+", " ", text.strip())


@dataclass
class IntentCache:
    """Cache of partial intents produced by the lexical extractor.

    Attributes:
        cache: Backing CachePort (InMemoryCache in production)
        enabled: When False every lookup misses and nothing is stored
    """

    cache: CachePort[TripIntent]
    enabled: bool = True
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @staticmethod
    def key(text: str, today: date, pending_field: Optional[str] = None) -> str:
        return f"{today.isoformat()}|{pending_field or '-'}|{normalize_text(text)}"

    def get(self, text: str, today: date, pending_field: Optional[str] = None) -> Optional[TripIntent]:
        if not self.enabled:
            return None
        hit = self.cache.get(self.key(text, today, pending_field))
        self._logger.debug("Intent cache lookup", extra={"hit": hit is not None})
        return hit

    def put(self, text: str, today: date, intent: TripIntent, pending_field: Optional[str] = None) -> None:
        if self.enabled:
            self.cache.set(self.key(text, today, pending_field), intent)

    def stats(self) -> Dict[str, Any]:
        stats = getattr(self.cache, "stats", None)
        return stats() if callable(stats) else {"size": self.cache.size()}

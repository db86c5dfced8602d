"""Deferred writes to the pattern-learning store."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..domain.models import ParseRecord, TripIntent
from ..ports.patterns import PatternStorePort


def to_record(text: str, intent: TripIntent, timestamp: Optional[datetime] = None) -> ParseRecord:
    return ParseRecord(
        text=text,
        destinations=intent.destination_names,
        trip_type=intent.effective_trip_type,
        duration_days=intent.resolved_duration,
        timestamp=timestamp,
    )


@dataclass
class LearningRecorder:
    """Submit confirmed resolutions to the store on a background worker.

    A single worker keeps the writes ordered; a turn never waits for one.

    Attributes:
        store: Pattern store receiving the records
        enabled: When False nothing is recorded
    """

    store: PatternStorePort
    enabled: bool = True
    _executor: ThreadPoolExecutor = field(init=False, repr=False)
    _pending: List[Future] = field(default_factory=list, init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pattern-writer")

    def submit(self, text: str, intent: TripIntent, timestamp: Optional[datetime] = None) -> None:
        """Queue one confirmed resolution."""
        if not self.enabled or not intent.destinations:
            return
        record = to_record(text, intent, timestamp)
        future = self._executor.submit(self._write, record)
        self._pending = [f for f in self._pending if not f.done()] + [future]

    def _write(self, record: ParseRecord) -> None:
        try:
            self.store.record(record)
        except Exception as e:
            self._logger.warning(
                "Failed to record resolution for learning",
                extra={"error": str(e), "destinations": list(record.destinations)},
            )

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for queued writes (used by tests and on shutdown)."""
        wait(list(self._pending), timeout=timeout)
        self._pending = [f for f in self._pending if not f.done()]

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

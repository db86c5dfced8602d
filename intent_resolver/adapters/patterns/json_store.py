"""JSON-file-backed pattern store.

Same behaviour as InMemoryPatternStore, with the history persisted to a
JSON file so learning survives process restarts. The file is written
atomically (temporary file, then rename).
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from pydantic import TypeAdapter, ValidationError

from ...domain.models import ParseRecord
from .memory_store import InMemoryPatternStore

_HISTORY = TypeAdapter(List[ParseRecord])


@dataclass
class JsonFilePatternStore(InMemoryPatternStore):
    """Pattern store persisted to ``path``.

    Attributes:
        path: JSON file holding the history
    """

    path: Path = field(default=Path("parse_history.json"))

    def __post_init__(self) -> None:
        super().__post_init__()
        self.path = Path(self.path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            records = _HISTORY.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            self._logger.warning(
                "Could not read pattern history, starting empty",
                extra={"path": str(self.path), "error": str(e)},
            )
            return
        with self._lock:
            self._history.extend(records)
            self.rebuild_patterns()
        self._logger.info(
            "Pattern history loaded",
            extra={"path": str(self.path), "records": len(self._history)},
        )

    def _save(self) -> None:
        payload = _HISTORY.dump_json(self.history(), indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp, self.path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def record(self, record: ParseRecord) -> None:
        with self._lock:
            super().record(record)
            self._save()

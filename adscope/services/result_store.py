"""Caller-side persistence of completed analysis results.

The whole collection lives in one slot and every mutation is a
read-modify-write of that slot. There is no locking: two writers sharing a
slot can overwrite each other (last writer wins).
"""

import json
import logging
import time
import uuid
from functools import lru_cache
from pathlib import Path
from typing import Callable, Protocol

from pydantic import ValidationError

from adscope.config import get_settings
from adscope.exceptions import PersistenceFailure
from adscope.models.analysis import ImageAnalysis, VideoAnalysis, parse_analysis
from adscope.models.saved import SavedImageResult, SavedVideoResult, saved_results_adapter, to_saved

logger = logging.getLogger(__name__)

SavedRecord = SavedVideoResult | SavedImageResult


class ResultBackend(Protocol):
    def read(self) -> list[dict]: ...

    def write(self, records: list[dict]) -> None: ...


class JsonFileBackend:
    """Stores the collection as a JSON array in a single file."""

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Cannot read saved results from {self.path}: {e}") from e
        if not isinstance(data, list):
            raise PersistenceFailure(f"Saved results in {self.path} are not a list")
        return data

    def write(self, records: list[dict]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        except OSError as e:
            raise PersistenceFailure(f"Cannot write saved results to {self.path}: {e}") from e


class MemoryBackend:
    def __init__(self, records: list[dict] | None = None):
        self.records = list(records or [])

    def read(self) -> list[dict]:
        return list(self.records)

    def write(self, records: list[dict]) -> None:
        self.records = list(records)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _make_id(created_at: int, source_file_name: str) -> str:
    return f"{created_at}-{uuid.uuid4().hex[:8]}-{source_file_name}"


def _dump(records: list[SavedRecord]) -> list[dict]:
    return [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records]


class ResultStore:
    def __init__(self, backend: ResultBackend | None, clock: Callable[[], int] = _now_ms):
        self.backend = backend
        self.clock = clock

    def _load(self) -> list[SavedRecord]:
        if self.backend is None:
            return []
        try:
            return saved_results_adapter.validate_python(self.backend.read())
        except (PersistenceFailure, ValidationError) as e:
            logger.error("saved_results_unreadable", extra={"error": str(e)})
            return []

    def _save(self, records: list[SavedRecord]) -> None:
        if self.backend is None:
            return
        try:
            self.backend.write(_dump(records))
        except PersistenceFailure as e:
            logger.error("saved_results_write_dropped", extra={"error": str(e), "count": len(records)})

    def insert(self, result: VideoAnalysis | ImageAnalysis | dict, source_file_name: str) -> SavedRecord:
        """Persist a result; a plain dict payload is validated first."""
        if isinstance(result, dict):
            result = parse_analysis(result)
        created_at = self.clock()
        saved = to_saved(
            result,
            id=_make_id(created_at, source_file_name),
            created_at=created_at,
            source_file_name=source_file_name,
        )
        self._save([saved, *self._load()])
        return saved

    def list_all(self) -> list[SavedRecord]:
        """Return every saved result, newest first."""
        return sorted(self._load(), key=lambda r: r.created_at, reverse=True)

    def get(self, id: str) -> SavedRecord | None:
        return next((r for r in self._load() if r.id == id), None)

    def delete_by_id(self, id: str) -> None:
        records = self._load()
        for i, record in enumerate(records):
            if record.id == id:
                del records[i]
                self._save(records)
                return

    def clear(self) -> None:
        self._save([])


@lru_cache
def get_result_store() -> ResultStore:
    return ResultStore(JsonFileBackend(get_settings().results_file))

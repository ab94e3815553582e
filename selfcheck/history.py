"""
Persisted self-check history.

The whole history lives under a single key as a JSON array, newest first.
It is read once at startup and rewritten wholesale after every change.
"""

import abc
import json
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from selfcheck.schemas import Assessment, HistoryEntry, SymptomRecord

HISTORY_KEY = "health_check_history"
TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


def new_entry(
    assessment: Assessment,
    symptoms: SymptomRecord,
    now: Optional[datetime] = None,
) -> HistoryEntry:
    if now is None:
        now = datetime.now()
    return HistoryEntry(
        id=str(int(now.timestamp() * 1000)),
        timestamp=now.strftime(TIMESTAMP_FORMAT),
        assessment=assessment,
        symptoms=symptoms,
    )


def prepend(entries: Sequence[HistoryEntry], entry: HistoryEntry) -> List[HistoryEntry]:
    return [entry, *entries]


def dump_entries(entries: Sequence[HistoryEntry]) -> str:
    return json.dumps(
        [entry.model_dump(mode="json", by_alias=True) for entry in entries],
        ensure_ascii=False,
        indent=2,
    )


def load_entries(raw: str) -> List[HistoryEntry]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("history must be a JSON array")
    return [HistoryEntry.model_validate(item) for item in data]


class HistoryStore(abc.ABC):

    @abc.abstractmethod
    def load(self) -> List[HistoryEntry]:
        ...

    @abc.abstractmethod
    def save(self, entries: Sequence[HistoryEntry]) -> None:
        ...

    @abc.abstractmethod
    def clear(self) -> None:
        ...


class _KeyValueHistoryStore(HistoryStore):
    """History kept as JSON text in one key/value slot."""

    def __init__(self, key: str = HISTORY_KEY):
        self.key = key

    @abc.abstractmethod
    def _read(self) -> Optional[str]:
        ...

    @abc.abstractmethod
    def _write(self, raw: str) -> None:
        ...

    @abc.abstractmethod
    def _remove(self) -> None:
        ...

    def load(self) -> List[HistoryEntry]:
        try:
            raw = self._read()
            if raw is None:
                return []
            return load_entries(raw)
        except (OSError, ValueError, ValidationError) as e:
            print(f"Warning: Could not load history '{self.key}': {e}", file=sys.stderr)
            return []

    def save(self, entries: Sequence[HistoryEntry]) -> None:
        self._write(dump_entries(entries))

    def clear(self) -> None:
        self._remove()


class JsonFileHistoryStore(_KeyValueHistoryStore):
    """Stores the key as `<directory>/<key>.json`."""

    def __init__(self, directory: Path, key: str = HISTORY_KEY):
        super().__init__(key)
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def _read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write(self, raw: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # Replace atomically.
        tmp = self.path.with_name(f".{self.path.name}.{int(time.time() * 1000)}.tmp")
        tmp.write_text(raw, encoding="utf-8")
        tmp.replace(self.path)

    def _remove(self) -> None:
        self.path.unlink(missing_ok=True)


class InMemoryHistoryStore(_KeyValueHistoryStore):

    def __init__(self, slots: Optional[Dict[str, str]] = None, key: str = HISTORY_KEY):
        super().__init__(key)
        self.slots = {} if slots is None else slots

    def _read(self) -> Optional[str]:
        return self.slots.get(self.key)

    def _write(self, raw: str) -> None:
        self.slots[self.key] = raw

    def _remove(self) -> None:
        self.slots.pop(self.key, None)

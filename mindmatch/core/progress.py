from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Set

from mindmatch.core.config import user_home
from mindmatch.core.levels import LevelCatalog
from mindmatch.core.session import Outcome, OutcomeKind

logger = logging.getLogger(__name__)

MAX_LEVEL_KEY = "mindmatch.maxLevel"
BEST_ATTEMPTS_KEY = "mindmatch.bestAttempts.{index}"


class ProgressStore(ABC):
    """Key/value store of non-negative integers. Writes report failure instead of raising."""

    @abstractmethod
    def get(self, key: str) -> Optional[int]:
        ...

    @abstractmethod
    def set(self, key: str, value: int) -> bool:
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        ...


class MemoryProgressStore(ProgressStore):
    def __init__(self, values: Optional[Dict[str, int]] = None) -> None:
        self._values: Dict[str, int] = dict(values or {})

    def get(self, key: str) -> Optional[int]:
        return self._values.get(key)

    def set(self, key: str, value: int) -> bool:
        self._values[key] = int(value)
        return True

    def delete(self, key: str) -> bool:
        self._values.pop(key, None)
        return True


class JsonProgressStore(ProgressStore):
    """Persists progress to ``~/.mindmatch/progress.json`` (or ``$MINDMATCH_HOME``).

    Each write replaces the whole file through a temp file, so a failed write
    leaves the previous contents intact.
    """

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = file_path or user_home() / "progress.json"
        self._values = self._load()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def get(self, key: str) -> Optional[int]:
        return self._values.get(key)

    def set(self, key: str, value: int) -> bool:
        values = dict(self._values)
        values[key] = int(value)
        if not self._save(values):
            return False
        self._values = values
        return True

    def delete(self, key: str) -> bool:
        if key not in self._values:
            return True
        values = {k: v for k, v in self._values.items() if k != key}
        if not self._save(values):
            return False
        self._values = values
        return True

    def _load(self) -> Dict[str, int]:
        if not self._file_path.exists():
            return {}
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load progress from %s: %s", self._file_path, e)
            return {}
        raw = payload.get("values", {}) if isinstance(payload, dict) else {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed progress file %s", self._file_path)
            return {}

        values: Dict[str, int] = {}
        for key, value in raw.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                logger.warning("Ignoring invalid progress value %r for %s", value, key)
                continue
            values[str(key)] = value
        return values

    def _save(self, values: Dict[str, int]) -> bool:
        tmp_path = self._file_path.with_suffix(".json.tmp")
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps({"values": values}, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._file_path)
        except OSError as e:
            logger.warning("Could not save progress to %s: %s", self._file_path, e)
            return False
        return True


class ProgressController:
    """Unlocks levels as they are won and remembers the fewest attempts per level.

    Writes and deletes that fail stay queued in memory and are retried by the next
    ``flush`` (each outcome flushes, as does app exit).
    """

    def __init__(self, store: ProgressStore, catalog: LevelCatalog) -> None:
        self._store = store
        self._catalog = catalog
        self._pending: Dict[str, int] = {}
        self._pending_deletes: Set[str] = set()
        self._best: Dict[int, int] = {}
        stored = store.get(MAX_LEVEL_KEY)
        self._max_unlocked = stored if stored is not None and stored >= 0 else 0

    @property
    def max_unlocked_level_index(self) -> int:
        return self._max_unlocked

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending or self._pending_deletes)

    def on_outcome(self, outcome: Outcome) -> bool:
        """Record a finished session. Returns False if persisting failed."""
        if outcome.kind is OutcomeKind.MATCHED:
            unlocked = outcome.level_index + 1
            if unlocked > self._max_unlocked:
                self._max_unlocked = unlocked
                self._pending[MAX_LEVEL_KEY] = unlocked
                logger.info("Unlocked level %d", unlocked)

            best = self.best_attempts(outcome.level_index)
            if best is None or outcome.attempts < best:
                self._best[outcome.level_index] = outcome.attempts
                key = BEST_ATTEMPTS_KEY.format(index=outcome.level_index)
                self._pending_deletes.discard(key)
                self._pending[key] = outcome.attempts
        return self.flush()

    def flush(self) -> bool:
        ok = True
        for key, value in list(self._pending.items()):
            if self._store.set(key, value):
                del self._pending[key]
            else:
                ok = False
                logger.warning("Progress write for %s failed; will retry", key)
        for key in sorted(self._pending_deletes):
            if self._store.delete(key):
                self._pending_deletes.discard(key)
            else:
                ok = False
                logger.warning("Progress delete for %s failed; will retry", key)
        return ok

    def resume(self) -> int:
        """Level index to resume at: the highest unlocked, clamped to the catalog."""
        return self._catalog.clamp(self._max_unlocked)

    def is_unlocked(self, index: int) -> bool:
        return 0 <= index <= self.resume()

    def best_attempts(self, index: int) -> Optional[int]:
        if index in self._best:
            return self._best[index]
        key = BEST_ATTEMPTS_KEY.format(index=index)
        if key in self._pending_deletes:
            return None
        value = self._store.get(key)
        if value is not None:
            self._best[index] = value
        return value

    def reset(self) -> bool:
        """Lock everything past level 0 and forget best attempts."""
        self._max_unlocked = 0
        self._best.clear()
        self._pending = {MAX_LEVEL_KEY: 0}
        self._pending_deletes = {
            BEST_ATTEMPTS_KEY.format(index=index) for index in range(self._catalog.level_count)
        }
        logger.info("Progress reset")
        return self.flush()

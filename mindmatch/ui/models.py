"""Data models used by the UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from mindmatch.core.levels import LevelCatalog, LevelDefinition
from mindmatch.core.progress import ProgressController


@dataclass
class LevelState:
    """UI state for a single level: unlock status, best result, and selection."""

    level: LevelDefinition
    unlocked: bool
    best_attempts: Optional[int] = None
    is_current: bool = False

    @property
    def completed(self) -> bool:
        return self.best_attempts is not None


def build_level_states(
    catalog: LevelCatalog,
    progress: ProgressController,
    unlock_all: bool = False,
) -> List[LevelState]:
    current = progress.resume()
    return [
        LevelState(
            level=level,
            unlocked=unlock_all or progress.is_unlocked(level.index),
            best_attempts=progress.best_attempts(level.index),
            is_current=level.index == current,
        )
        for level in catalog.all()
    ]

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from mindmatch.core.config import GameSettings

# (max pair count, rows, cols); beyond the last row the grid grows by rows of 6.
_GRID_HINTS: Tuple[Tuple[int, int, int], ...] = (
    (2, 2, 2),
    (3, 2, 3),
    (4, 2, 4),
    (6, 3, 4),
    (8, 4, 4),
    (10, 4, 5),
)


@dataclass(frozen=True)
class LevelDefinition:
    index: int
    pair_count: int
    rows: int
    cols: int
    time_limit_seconds: Optional[int]
    distract_animations: bool
    similar_faces: bool

    @property
    def card_count(self) -> int:
        return 2 * self.pair_count


def _hinted_rows(pair_count: int) -> int:
    for limit, rows, _cols in _GRID_HINTS:
        if pair_count <= limit:
            return rows
    return 4 + (pair_count - 10) // 3


def grid_shape(pair_count: int) -> Tuple[int, int]:
    """Return (rows, cols) for a board of ``2 * pair_count`` cards.

    The hint table gives the preferred row count. When the hinted shape does
    not hold exactly ``2 * pair_count`` cells, the divisor of the card count
    closest to the hinted row count is used instead, so ``rows * cols`` always
    equals the card count and rows never exceed cols.
    """
    if pair_count < 1:
        raise ValueError(f"pair_count must be positive, got {pair_count}")
    cards = 2 * pair_count
    hint = _hinted_rows(pair_count)
    candidates = [r for r in range(1, math.isqrt(cards) + 1) if cards % r == 0]
    rows = min(candidates, key=lambda r: (abs(r - hint), -r))
    return rows, cards // rows


class LevelCatalog:
    """Maps a level index to its definition. Pure and stateless apart from tuning."""

    def __init__(self, max_faces: int, settings: Optional[GameSettings] = None) -> None:
        if max_faces < 2:
            raise ValueError(f"A catalog needs at least 2 faces, got {max_faces}")
        self._max_faces = max_faces
        self._settings = settings or GameSettings()

    @property
    def level_count(self) -> int:
        return self._settings.level_count

    @property
    def last_index(self) -> int:
        return self._settings.level_count - 1

    def clamp(self, index: int) -> int:
        return max(0, min(int(index), self.last_index))

    def get(self, index: int) -> LevelDefinition:
        s = self._settings
        index = self.clamp(index)
        pair_count = min(2 + index // 2, self._max_faces)
        rows, cols = grid_shape(pair_count)
        time_limit: Optional[int] = None
        if s.base_time_limit_seconds > 0:
            time_limit = max(s.base_time_limit_seconds - index, s.min_time_limit_seconds)
        return LevelDefinition(
            index=index,
            pair_count=pair_count,
            rows=rows,
            cols=cols,
            time_limit_seconds=time_limit,
            distract_animations=index >= s.distract_from_level,
            similar_faces=index >= s.similar_from_level,
        )

    def all(self) -> List[LevelDefinition]:
        return [self.get(i) for i in range(self.level_count)]

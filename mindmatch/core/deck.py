from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from mindmatch.core.faces import FacePool
from mindmatch.core.levels import LevelDefinition

logger = logging.getLogger(__name__)


class FacePoolTooSmallError(ValueError):
    """Raised when a level needs more faces than the pool holds."""


@dataclass(frozen=True)
class Card:
    id: str
    face_id: str
    flipped: bool = False
    matched: bool = False


class DeckBuilder:
    """Builds shuffled decks. Pass a seeded ``random.Random`` for reproducible layouts."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()
        self._serial = itertools.count(1)

    @property
    def rng(self) -> random.Random:
        return self._rng

    def build(self, level: LevelDefinition, face_pool: FacePool) -> List[Card]:
        if len(face_pool) < level.pair_count:
            raise FacePoolTooSmallError(
                f"Level {level.index} needs {level.pair_count} faces, pool has {len(face_pool)}"
            )
        cards: List[Card] = []
        for face in face_pool.take(level.pair_count):
            for _ in range(2):
                cards.append(Card(id=f"{face.key}-{next(self._serial)}", face_id=face.key))

        # Fisher-Yates
        for i in range(len(cards) - 1, 0, -1):
            j = self._rng.randrange(i + 1)
            cards[i], cards[j] = cards[j], cards[i]

        logger.debug("Built %d-card deck for level %d", len(cards), level.index)
        return cards

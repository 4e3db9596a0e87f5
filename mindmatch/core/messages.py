from __future__ import annotations

import random
from typing import Optional

from mindmatch.core.session import Outcome, OutcomeKind

ENCOURAGEMENTS = (
    "You're doing wonderfully!",
    "Great job using your memory!",
    "Keep going, you've got this!",
    "Your mind is working beautifully!",
    "Nice work! Try another pair.",
)


def encouragement(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(ENCOURAGEMENTS)


def outcome_message(outcome: Outcome) -> str:
    if outcome.kind is OutcomeKind.MATCHED:
        noun = "attempt" if outcome.attempts == 1 else "attempts"
        return (
            f"You completed the game in {outcome.attempts} {noun}! "
            "Your memory is working beautifully."
        )
    return "Time's up! Take a breath and try again whenever you like."

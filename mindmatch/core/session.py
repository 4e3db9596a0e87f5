"""Mind Match session state machine.

The rules live in pure functions over an immutable ``SessionState``:
``reduce(state, event)`` returns the next state and never touches a clock.
``GameSession`` owns the current state, schedules the intro, reveal delay and
countdown against an injected ``Clock`` and feeds the resulting events back
through ``reduce``.

Status flow::

    IDLE -> INTRO -> PLAYING <-> EVALUATING -> COMPLETE

When the countdown runs out at the same moment a reveal resolves, the timeout
wins: ``Resolve`` is ignored once time is up and the session completes with a
``timeout`` outcome.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, Union

from mindmatch.core.clock import CancelHandle, Clock
from mindmatch.core.config import GameSettings
from mindmatch.core.deck import Card, DeckBuilder
from mindmatch.core.faces import FacePool
from mindmatch.core.levels import LevelDefinition

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    IDLE = "idle"
    INTRO = "intro"
    PLAYING = "playing"
    EVALUATING = "evaluating"
    COMPLETE = "complete"


class SelectionResult(Enum):
    REJECTED = "rejected"
    FLIPPED = "flipped"
    MATCH = "match"
    MISMATCH = "mismatch"


class OutcomeKind(Enum):
    MATCHED = "matched"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    attempts: int
    level_index: int


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of one puzzle. Replaced, never mutated."""

    level: LevelDefinition
    cards: Tuple[Card, ...]
    flipped_ids: Tuple[str, ...] = ()
    matched_pairs: int = 0
    attempts: int = 0
    time_remaining: Optional[int] = None
    status: SessionStatus = SessionStatus.IDLE
    outcome: Optional[Outcome] = None

    def card(self, card_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETE


# Events -------------------------------------------------------------------


@dataclass(frozen=True)
class Begin:
    """Intro finished; input opens."""


@dataclass(frozen=True)
class SelectCard:
    card_id: str


@dataclass(frozen=True)
class Resolve:
    """Reveal delay finished; settle the two flipped cards."""


@dataclass(frozen=True)
class Tick:
    """One second of countdown."""


@dataclass(frozen=True)
class Expire:
    """Countdown deadline reached, possibly between ticks."""


@dataclass(frozen=True)
class Restart:
    deck: Tuple[Card, ...]


Event = Union[Begin, SelectCard, Resolve, Tick, Expire, Restart]


# Pure transitions ---------------------------------------------------------


def new_session(level: LevelDefinition, deck: Sequence[Card]) -> SessionState:
    """Fresh session in the INTRO state."""
    cards = tuple(replace(c, flipped=False, matched=False) for c in deck)
    if len(cards) != level.card_count:
        raise ValueError(
            f"Level {level.index} needs {level.card_count} cards, deck has {len(cards)}"
        )
    if len({c.id for c in cards}) != len(cards):
        raise ValueError("Deck has duplicate card ids")
    unpaired = sorted(face for face, n in Counter(c.face_id for c in cards).items() if n != 2)
    if unpaired:
        raise ValueError(f"Every face must appear exactly twice: {', '.join(unpaired)}")
    return SessionState(
        level=level,
        cards=cards,
        time_remaining=level.time_limit_seconds,
        status=SessionStatus.INTRO,
    )


def _with_cards(cards: Tuple[Card, ...], ids: Sequence[str], **changes) -> Tuple[Card, ...]:
    return tuple(replace(c, **changes) if c.id in ids else c for c in cards)


def _timed_out(state: SessionState) -> SessionState:
    return replace(
        state,
        time_remaining=0,
        status=SessionStatus.COMPLETE,
        outcome=Outcome(OutcomeKind.TIMEOUT, state.attempts, state.level.index),
    )


def select_card(state: SessionState, card_id: str) -> Tuple[SessionState, SelectionResult]:
    """Flip one card. Rejected selections return ``state`` itself, unchanged."""
    if state.status is not SessionStatus.PLAYING or len(state.flipped_ids) >= 2:
        return state, SelectionResult.REJECTED
    card = state.card(card_id)
    if card is None or card.flipped or card.matched:
        return state, SelectionResult.REJECTED

    flipped_ids = state.flipped_ids + (card_id,)
    cards = _with_cards(state.cards, (card_id,), flipped=True)
    if len(flipped_ids) == 1:
        return replace(state, cards=cards, flipped_ids=flipped_ids), SelectionResult.FLIPPED

    first = state.card(flipped_ids[0])
    is_match = first is not None and first.face_id == card.face_id
    next_state = replace(
        state,
        cards=cards,
        flipped_ids=flipped_ids,
        attempts=state.attempts + 1,
        status=SessionStatus.EVALUATING,
    )
    return next_state, SelectionResult.MATCH if is_match else SelectionResult.MISMATCH


def _resolve(state: SessionState) -> SessionState:
    if state.status is not SessionStatus.EVALUATING or len(state.flipped_ids) != 2:
        return state
    if state.time_remaining is not None and state.time_remaining <= 0:
        return _timed_out(state)

    first, second = (state.card(i) for i in state.flipped_ids)
    if first is None or second is None or first.face_id != second.face_id:
        return replace(
            state,
            cards=_with_cards(state.cards, state.flipped_ids, flipped=False),
            flipped_ids=(),
            status=SessionStatus.PLAYING,
        )

    matched_pairs = state.matched_pairs + 1
    cards = _with_cards(state.cards, state.flipped_ids, matched=True)
    if matched_pairs == state.level.pair_count:
        return replace(
            state,
            cards=cards,
            flipped_ids=(),
            matched_pairs=matched_pairs,
            status=SessionStatus.COMPLETE,
            outcome=Outcome(OutcomeKind.MATCHED, state.attempts, state.level.index),
        )
    return replace(
        state,
        cards=cards,
        flipped_ids=(),
        matched_pairs=matched_pairs,
        status=SessionStatus.PLAYING,
    )


def _counting(state: SessionState) -> bool:
    return (
        state.time_remaining is not None
        and state.status in (SessionStatus.PLAYING, SessionStatus.EVALUATING)
    )


def reduce(state: SessionState, event: Event) -> SessionState:
    if isinstance(event, SelectCard):
        return select_card(state, event.card_id)[0]
    if isinstance(event, Resolve):
        return _resolve(state)
    if isinstance(event, Tick):
        if not _counting(state):
            return state
        remaining = state.time_remaining - 1
        if remaining <= 0:
            return _timed_out(state)
        return replace(state, time_remaining=remaining)
    if isinstance(event, Expire):
        return _timed_out(state) if _counting(state) else state
    if isinstance(event, Begin):
        if state.status is not SessionStatus.INTRO:
            return state
        return replace(state, status=SessionStatus.PLAYING)
    if isinstance(event, Restart):
        return new_session(state.level, event.deck)
    raise TypeError(f"Unknown session event: {event!r}")


# Clock-driven owner -------------------------------------------------------

StateListener = Callable[[SessionState], None]
OutcomeListener = Callable[[Outcome], None]


class GameSession:
    """Owns the live ``SessionState`` and the timers that drive it.

    Every scheduled callback captures the generation it was scheduled in;
    ``start``, ``restart``, ``advance`` and ``close`` bump the generation and
    cancel outstanding handles, so a late callback from an abandoned level is
    dropped instead of mutating the new one.
    """

    def __init__(
        self,
        clock: Clock,
        deck_builder: DeckBuilder,
        face_pool: FacePool,
        settings: Optional[GameSettings] = None,
    ) -> None:
        self._clock = clock
        self._deck_builder = deck_builder
        self._face_pool = face_pool
        self._settings = settings or GameSettings()
        self._state: Optional[SessionState] = None
        self._generation = 0
        self._intro_handle: Optional[CancelHandle] = None
        self._reveal_handle: Optional[CancelHandle] = None
        self._countdown_handle: Optional[CancelHandle] = None
        self._deadline_ms: Optional[int] = None
        self._listeners: List[StateListener] = []
        self._outcome_listeners: List[OutcomeListener] = []

    @property
    def state(self) -> Optional[SessionState]:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status if self._state is not None else SessionStatus.IDLE

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def outcome(self) -> Optional[Outcome]:
        return self._state.outcome if self._state is not None else None

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def on_outcome(self, listener: OutcomeListener) -> None:
        self._outcome_listeners.append(listener)

    def start(self, level: LevelDefinition, deck: Optional[Sequence[Card]] = None) -> SessionState:
        if deck is None:
            deck = self._deck_builder.build(level, self._face_pool)
        state = new_session(level, deck)
        self._cancel_pending()
        self._generation += 1
        self._state = state
        logger.info(
            "Level %d started: %d pairs on %dx%d, limit=%s",
            level.index,
            level.pair_count,
            level.rows,
            level.cols,
            level.time_limit_seconds,
        )
        generation = self._generation
        self._intro_handle = self._clock.after(
            self._settings.intro_ms, lambda: self._on_intro_elapsed(generation)
        )
        self._notify()
        return self._state

    def restart(self) -> SessionState:
        if self._state is None:
            raise RuntimeError("No level to restart; call start() first")
        level = self._state.level
        deck = self._deck_builder.build(level, self._face_pool)
        state = reduce(self._state, Restart(tuple(deck)))
        self._cancel_pending()
        self._generation += 1
        self._state = state
        logger.info("Level %d restarted", level.index)
        generation = self._generation
        self._intro_handle = self._clock.after(
            self._settings.intro_ms, lambda: self._on_intro_elapsed(generation)
        )
        self._notify()
        return self._state

    def advance(self, level: LevelDefinition, deck: Optional[Sequence[Card]] = None) -> SessionState:
        return self.start(level, deck)

    def close(self) -> None:
        """Abandon the current level (navigation away)."""
        self._cancel_pending()
        self._generation += 1
        self._state = None

    def select_card(self, card_id: str) -> SelectionResult:
        if self._state is None:
            return SelectionResult.REJECTED
        next_state, result = select_card(self._state, card_id)
        if result is SelectionResult.REJECTED:
            logger.debug("Selection of %s rejected (status=%s)", card_id, self._state.status.value)
            return result
        self._state = next_state
        logger.debug("Card %s flipped: %s", card_id, result.value)
        if result in (SelectionResult.MATCH, SelectionResult.MISMATCH):
            delay = (
                self._settings.match_reveal_ms
                if result is SelectionResult.MATCH
                else self._settings.mismatch_reveal_ms
            )
            generation = self._generation
            self._reveal_handle = self._clock.after(delay, lambda: self._on_reveal(generation))
        self._notify()
        return result

    def tick(self) -> None:
        self._dispatch(Tick())

    # Scheduled callbacks --------------------------------------------------

    def _is_stale(self, generation: int, what: str) -> bool:
        if generation != self._generation or self._state is None:
            logger.warning("Dropped stale %s callback from session %d", what, generation)
            return True
        return False

    def _on_intro_elapsed(self, generation: int) -> None:
        if self._is_stale(generation, "intro"):
            return
        self._intro_handle = None
        level = self._state.level
        if level.time_limit_seconds is not None:
            self._deadline_ms = self._clock.now() + level.time_limit_seconds * 1000
            self._countdown_handle = self._clock.every_second(lambda: self._on_second(generation))
        self._dispatch(Begin())

    def _on_second(self, generation: int) -> None:
        if self._is_stale(generation, "countdown"):
            return
        self._dispatch(Tick())

    def _on_reveal(self, generation: int) -> None:
        if self._is_stale(generation, "reveal"):
            return
        self._reveal_handle = None
        if self._deadline_ms is not None and self._clock.now() >= self._deadline_ms:
            self._dispatch(Expire())
        else:
            self._dispatch(Resolve())

    # Internals ------------------------------------------------------------

    def _dispatch(self, event: Event) -> None:
        if self._state is None:
            return
        previous = self._state
        self._state = reduce(previous, event)
        if self._state is previous:
            return
        outcome: Optional[Outcome] = None
        if self._state.is_complete and not previous.is_complete:
            outcome = self._state.outcome
            self._cancel_pending()
            logger.info(
                "Level %d complete: %s after %d attempts",
                outcome.level_index,
                outcome.kind.value,
                outcome.attempts,
            )
        self._notify()
        if outcome is not None:
            for listener in list(self._outcome_listeners):
                listener(outcome)

    def _notify(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            listener(state)

    def _cancel_pending(self) -> None:
        for handle in (self._intro_handle, self._reveal_handle, self._countdown_handle):
            self._clock.cancel(handle)
        self._intro_handle = self._reveal_handle = self._countdown_handle = None
        self._deadline_ms = None

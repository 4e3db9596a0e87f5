"""Tests for mindmatch.core.session – the card flip/match state machine."""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import List, Optional

import pytest

from mindmatch.core.clock import CancelHandle, ManualClock
from mindmatch.core.config import GameSettings
from mindmatch.core.deck import Card, DeckBuilder
from mindmatch.core.faces import FacePool
from mindmatch.core.levels import LevelCatalog, LevelDefinition
from mindmatch.core.session import (
    Begin,
    Expire,
    GameSession,
    Outcome,
    OutcomeKind,
    Resolve,
    Restart,
    SelectCard,
    SelectionResult,
    SessionState,
    SessionStatus,
    Tick,
    new_session,
    reduce,
    select_card,
)


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------

def ids_for(state: SessionState, face: str) -> List[str]:
    return [c.id for c in state.cards if c.face_id == face]


def assert_flip_invariant(state: SessionState) -> None:
    assert len(state.flipped_ids) <= 2
    for card in state.cards:
        assert card.flipped == (card.id in state.flipped_ids or card.matched)
    assert state.matched_pairs == sum(1 for c in state.cards if c.matched) // 2


@pytest.fixture()
def catalog() -> LevelCatalog:
    return LevelCatalog(max_faces=26)


@pytest.fixture()
def pool() -> FacePool:
    return FacePool.from_keys(["cat", "dog", "sun", "tree"])


@pytest.fixture()
def level0(catalog: LevelCatalog) -> LevelDefinition:
    return catalog.get(0)


@pytest.fixture()
def deck(level0: LevelDefinition, pool: FacePool) -> List[Card]:
    return DeckBuilder(random.Random(4)).build(level0, pool)


@pytest.fixture()
def playing(level0: LevelDefinition, deck: List[Card]) -> SessionState:
    return reduce(new_session(level0, deck), Begin())


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def session(clock: ManualClock, pool: FacePool) -> GameSession:
    return GameSession(clock, DeckBuilder(random.Random(8)), pool, GameSettings())


# ===========================================================================
# Pure reducer
# ===========================================================================

class TestNewSession:
    def test_starts_in_intro(self, level0: LevelDefinition, deck: List[Card]):
        state = new_session(level0, deck)
        assert state.status is SessionStatus.INTRO
        assert state.matched_pairs == 0
        assert state.attempts == 0
        assert state.flipped_ids == ()
        assert state.time_remaining == 60
        assert state.outcome is None

    def test_resets_card_flags(self, level0: LevelDefinition, deck: List[Card]):
        dirty = [replace(c, flipped=True, matched=True) for c in deck]
        state = new_session(level0, dirty)
        assert not any(c.flipped or c.matched for c in state.cards)

    def test_wrong_deck_size(self, level0: LevelDefinition, deck: List[Card]):
        with pytest.raises(ValueError, match="needs 4 cards"):
            new_session(level0, deck[:2])

    def test_begin_opens_play(self, level0: LevelDefinition, deck: List[Card]):
        assert reduce(new_session(level0, deck), Begin()).status is SessionStatus.PLAYING

    def test_duplicate_card_ids(self, level0: LevelDefinition):
        deck = [Card("x", "cat"), Card("x", "cat"), Card("y", "dog"), Card("z", "dog")]
        with pytest.raises(ValueError, match="duplicate card ids"):
            new_session(level0, deck)

    def test_unpaired_faces(self, level0: LevelDefinition):
        deck = [Card("a", "cat"), Card("b", "cat"), Card("c", "cat"), Card("d", "dog")]
        with pytest.raises(ValueError, match="exactly twice: cat, dog"):
            new_session(level0, deck)


class TestSelectCard:
    def test_rejected_during_intro(self, level0: LevelDefinition, deck: List[Card]):
        state = new_session(level0, deck)
        after, result = select_card(state, deck[0].id)
        assert result is SelectionResult.REJECTED
        assert after is state

    def test_first_flip(self, playing: SessionState):
        cat = ids_for(playing, "cat")[0]
        state, result = select_card(playing, cat)
        assert result is SelectionResult.FLIPPED
        assert state.flipped_ids == (cat,)
        assert state.card(cat).flipped is True
        assert state.attempts == 0
        assert_flip_invariant(state)

    def test_same_card_twice_rejected(self, playing: SessionState):
        cat = ids_for(playing, "cat")[0]
        state, _ = select_card(playing, cat)
        again, result = select_card(state, cat)
        assert result is SelectionResult.REJECTED
        assert again is state

    def test_unknown_card_rejected(self, playing: SessionState):
        assert select_card(playing, "nope")[1] is SelectionResult.REJECTED

    def test_second_flip_matching(self, playing: SessionState):
        cat1, cat2 = ids_for(playing, "cat")
        state, _ = select_card(playing, cat1)
        state, result = select_card(state, cat2)
        assert result is SelectionResult.MATCH
        assert state.status is SessionStatus.EVALUATING
        assert state.attempts == 1

    def test_second_flip_mismatching(self, playing: SessionState):
        state, _ = select_card(playing, ids_for(playing, "cat")[0])
        state, result = select_card(state, ids_for(playing, "dog")[0])
        assert result is SelectionResult.MISMATCH
        assert state.status is SessionStatus.EVALUATING
        assert state.attempts == 1

    def test_third_flip_rejected_while_evaluating(self, playing: SessionState):
        cat1, cat2 = ids_for(playing, "cat")
        dog1 = ids_for(playing, "dog")[0]
        state = reduce(reduce(playing, SelectCard(cat1)), SelectCard(dog1))
        after, result = select_card(state, cat2)
        assert result is SelectionResult.REJECTED
        assert len(after.flipped_ids) == 2

    def test_rejected_when_two_flipped_even_if_playing(self, playing: SessionState):
        cat1, cat2 = ids_for(playing, "cat")
        dog1 = ids_for(playing, "dog")[0]
        state = replace(reduce(reduce(playing, SelectCard(cat1)), SelectCard(dog1)), status=SessionStatus.PLAYING)
        assert select_card(state, cat2)[1] is SelectionResult.REJECTED


class TestResolve:
    def test_match_marks_pair(self, playing: SessionState):
        cat1, cat2 = ids_for(playing, "cat")
        state = reduce(reduce(reduce(playing, SelectCard(cat1)), SelectCard(cat2)), Resolve())
        assert state.matched_pairs == 1
        assert state.card(cat1).matched and state.card(cat2).matched
        assert state.flipped_ids == ()
        assert state.status is SessionStatus.PLAYING
        assert_flip_invariant(state)

    def test_mismatch_turns_cards_back(self, playing: SessionState):
        cat1 = ids_for(playing, "cat")[0]
        dog1 = ids_for(playing, "dog")[0]
        state = reduce(reduce(reduce(playing, SelectCard(cat1)), SelectCard(dog1)), Resolve())
        assert state.attempts == 1
        assert state.card(cat1).flipped is False
        assert state.card(dog1).flipped is False
        assert state.card(cat1).matched is False
        assert state.status is SessionStatus.PLAYING
        assert state.matched_pairs == 0
        assert_flip_invariant(state)

    def test_winning_last_pair(self, playing: SessionState):
        state = playing
        for face in ("cat", "dog"):
            a, b = ids_for(state, face)
            state = reduce(reduce(reduce(state, SelectCard(a)), SelectCard(b)), Resolve())
        assert state.status is SessionStatus.COMPLETE
        assert state.matched_pairs == 2
        assert state.outcome == Outcome(OutcomeKind.MATCHED, attempts=2, level_index=0)

    def test_single_pair_level_completes_on_first_match(self):
        level = LevelDefinition(0, 1, 1, 2, 60, False, False)
        state = reduce(new_session(level, [Card("cat-1", "cat"), Card("cat-2", "cat")]), Begin())
        state = reduce(reduce(reduce(state, SelectCard("cat-1")), SelectCard("cat-2")), Resolve())
        assert state.matched_pairs == 1
        assert state.status is SessionStatus.COMPLETE
        assert state.outcome == Outcome(OutcomeKind.MATCHED, attempts=1, level_index=0)

    def test_matched_cards_stay_matched(self, playing: SessionState):
        cat1, cat2 = ids_for(playing, "cat")
        dog1 = ids_for(playing, "dog")[0]
        state = reduce(reduce(reduce(playing, SelectCard(cat1)), SelectCard(cat2)), Resolve())
        assert select_card(state, cat1)[1] is SelectionResult.REJECTED
        state = reduce(state, SelectCard(dog1))
        assert state.card(cat1).matched is True
        assert_flip_invariant(state)

    def test_resolve_outside_evaluation_is_noop(self, playing: SessionState):
        assert reduce(playing, Resolve()) is playing

    def test_resolve_after_time_ran_out_is_timeout(self, playing: SessionState):
        cat1, cat2 = ids_for(playing, "cat")
        evaluating = reduce(reduce(playing, SelectCard(cat1)), SelectCard(cat2))
        state = reduce(replace(evaluating, time_remaining=0), Resolve())
        assert state.status is SessionStatus.COMPLETE
        assert state.outcome.kind is OutcomeKind.TIMEOUT
        assert state.matched_pairs == 0


class TestCountdown:
    def test_tick_decrements_while_playing(self, playing: SessionState):
        assert reduce(playing, Tick()).time_remaining == 59

    def test_tick_ignored_during_intro(self, level0: LevelDefinition, deck: List[Card]):
        state = new_session(level0, deck)
        assert reduce(state, Tick()) is state

    def test_tick_ignored_without_limit(self, playing: SessionState):
        state = replace(playing, time_remaining=None)
        assert reduce(state, Tick()) is state

    def test_tick_to_zero_times_out(self, playing: SessionState):
        state = reduce(replace(playing, time_remaining=1, attempts=3), Tick())
        assert state.time_remaining == 0
        assert state.status is SessionStatus.COMPLETE
        assert state.outcome == Outcome(OutcomeKind.TIMEOUT, attempts=3, level_index=0)

    def test_timeout_beats_pending_match(self, playing: SessionState):
        state = playing
        a, b = ids_for(state, "cat")
        state = reduce(reduce(reduce(state, SelectCard(a)), SelectCard(b)), Resolve())
        c, d = ids_for(state, "dog")
        state = reduce(reduce(replace(state, time_remaining=1), SelectCard(c)), SelectCard(d))
        state = reduce(reduce(state, Tick()), Resolve())
        assert state.outcome.kind is OutcomeKind.TIMEOUT
        assert state.matched_pairs == 1

    def test_expire(self, playing: SessionState):
        state = reduce(playing, Expire())
        assert state.time_remaining == 0
        assert state.outcome.kind is OutcomeKind.TIMEOUT

    def test_complete_accepts_nothing(self, playing: SessionState):
        done = reduce(playing, Expire())
        for event in (Tick(), Expire(), Resolve(), Begin(), SelectCard(done.cards[0].id)):
            assert reduce(done, event) is done


class TestRestartEvent:
    def test_restart_uses_new_deck(self, playing: SessionState, level0: LevelDefinition, pool: FacePool):
        played = reduce(playing, SelectCard(playing.cards[0].id))
        new_deck = tuple(DeckBuilder(random.Random(99)).build(level0, pool))
        state = reduce(played, Restart(new_deck))
        assert state.status is SessionStatus.INTRO
        assert [c.id for c in state.cards] == [c.id for c in new_deck]
        assert state.flipped_ids == ()

    def test_unknown_event(self, playing: SessionState):
        with pytest.raises(TypeError):
            reduce(playing, object())  # type: ignore[arg-type]


# ===========================================================================
# GameSession – clock driven
# ===========================================================================

class TestGameSessionLifecycle:
    def test_idle_before_start(self, session: GameSession):
        assert session.status is SessionStatus.IDLE
        assert session.state is None
        assert session.select_card("x") is SelectionResult.REJECTED

    def test_intro_then_playing(self, session: GameSession, clock: ManualClock, level0: LevelDefinition):
        state = session.start(level0)
        assert state.status is SessionStatus.INTRO
        assert session.select_card(state.cards[0].id) is SelectionResult.REJECTED
        clock.advance(999)
        assert session.status is SessionStatus.INTRO
        clock.advance(1)
        assert session.status is SessionStatus.PLAYING
        assert session.state.time_remaining == 60

    def test_start_builds_deck_when_none_given(self, session: GameSession, level0: LevelDefinition):
        state = session.start(level0)
        assert len(state.cards) == 4

    def test_malformed_deck_keeps_running_level(
        self, session: GameSession, clock: ManualClock, level0: LevelDefinition
    ):
        state = session.start(level0)
        bad = [Card("x", "cat"), Card("x", "cat"), Card("y", "dog"), Card("z", "dog")]
        with pytest.raises(ValueError):
            session.start(level0, bad)
        assert session.state is state
        clock.advance(1000)
        assert session.status is SessionStatus.PLAYING

    def test_countdown_runs_after_intro(self, session: GameSession, clock: ManualClock, level0: LevelDefinition):
        session.start(level0)
        clock.advance(1000 + 3000)
        assert session.state.time_remaining == 57

    def test_public_tick(self, session: GameSession, clock: ManualClock, level0: LevelDefinition):
        session.start(level0)
        clock.advance(1000)
        session.tick()
        assert session.state.time_remaining == 59

    def test_listeners_get_snapshots(self, session: GameSession, clock: ManualClock, level0: LevelDefinition):
        seen: List[SessionStatus] = []
        session.subscribe(lambda s: seen.append(s.status))
        state = session.start(level0)
        clock.advance(1000)
        session.select_card(state.cards[0].id)
        assert seen == [SessionStatus.INTRO, SessionStatus.PLAYING, SessionStatus.PLAYING]

    def test_restart_without_start(self, session: GameSession):
        with pytest.raises(RuntimeError):
            session.restart()


class TestGameSessionPlay:
    def _play(self, session: GameSession, clock: ManualClock, level: LevelDefinition) -> SessionState:
        state = session.start(level)
        clock.advance(1000)
        return state

    def test_match_resolves_after_reveal_delay(self, session, clock, level0):
        state = self._play(session, clock, level0)
        cat1, cat2 = ids_for(state, "cat")
        assert session.select_card(cat1) is SelectionResult.FLIPPED
        assert session.select_card(cat2) is SelectionResult.MATCH
        clock.advance(999)
        assert session.status is SessionStatus.EVALUATING
        clock.advance(1)
        assert session.state.matched_pairs == 1
        assert session.status is SessionStatus.PLAYING

    def test_mismatch_resolves_after_longer_delay(self, session, clock, level0):
        state = self._play(session, clock, level0)
        cat1 = ids_for(state, "cat")[0]
        dog1 = ids_for(state, "dog")[0]
        session.select_card(cat1)
        assert session.select_card(dog1) is SelectionResult.MISMATCH
        clock.advance(1000)
        assert session.status is SessionStatus.EVALUATING
        clock.advance(500)
        assert session.status is SessionStatus.PLAYING
        assert session.state.card(cat1).flipped is False
        assert session.state.attempts == 1

    def test_double_tap_counts_once(self, session, clock, level0):
        state = self._play(session, clock, level0)
        cat1, cat2 = ids_for(state, "cat")
        results = [session.select_card(i) for i in (cat1, cat1, cat2, cat2, ids_for(state, "dog")[0])]
        assert results.count(SelectionResult.REJECTED) == 3
        clock.advance(1000)
        assert session.state.attempts == 1
        assert session.state.matched_pairs == 1

    def test_win_emits_outcome_once(self, session, clock, level0):
        outcomes: List[Outcome] = []
        session.on_outcome(outcomes.append)
        state = self._play(session, clock, level0)
        for face in ("cat", "dog"):
            a, b = ids_for(state, face)
            session.select_card(a)
            session.select_card(b)
            clock.advance(1000)
        clock.advance(120_000)
        assert outcomes == [Outcome(OutcomeKind.MATCHED, attempts=2, level_index=0)]
        assert session.status is SessionStatus.COMPLETE
        assert clock.pending == 0

    def test_timeout_emits_outcome(self, session, clock, level0):
        outcomes: List[Outcome] = []
        session.on_outcome(outcomes.append)
        self._play(session, clock, level0)
        clock.advance(60_000)
        assert outcomes == [Outcome(OutcomeKind.TIMEOUT, attempts=0, level_index=0)]
        assert session.state.time_remaining == 0
        assert clock.pending == 0

    def test_no_countdown_without_limit(self, clock, pool):
        settings = GameSettings(base_time_limit_seconds=0, min_time_limit_seconds=0)
        session = GameSession(clock, DeckBuilder(random.Random(1)), pool, settings)
        session.start(LevelCatalog(26, settings).get(0))
        clock.advance(1000)
        assert clock.pending == 0
        clock.advance(600_000)
        assert session.status is SessionStatus.PLAYING


class TestTimeoutPrecedence:
    """The countdown expiring and the last reveal landing on the same millisecond."""

    def _match_first_pair(self, session, clock, level0) -> SessionState:
        state = session.start(level0)
        clock.advance(1000)
        a, b = ids_for(state, "cat")
        session.select_card(a)
        session.select_card(b)
        clock.advance(1000)
        return session.state

    def test_tick_fires_first(self, session, clock, level0):
        outcomes: List[Outcome] = []
        session.on_outcome(outcomes.append)
        state = self._match_first_pair(session, clock, level0)
        clock.advance(60_000 - clock.now())  # now 60s, one second left
        assert session.state.time_remaining == 1
        c, d = ids_for(state, "dog")
        session.select_card(c)
        session.select_card(d)  # reveal due at 61s, same as the last tick
        clock.advance(1000)
        assert [o.kind for o in outcomes] == [OutcomeKind.TIMEOUT]
        assert session.state.matched_pairs == 1

    def test_reveal_fires_first(self, clock, pool, level0):
        settings = GameSettings(match_reveal_ms=1500)
        session = GameSession(clock, DeckBuilder(random.Random(8)), pool, settings)
        outcomes: List[Outcome] = []
        session.on_outcome(outcomes.append)
        state = session.start(level0)
        clock.advance(1000)
        a, b = ids_for(state, "cat")
        session.select_card(a)
        session.select_card(b)
        clock.advance(1500)
        clock.advance(59_500 - clock.now())
        c, d = ids_for(state, "dog")
        session.select_card(c)
        session.select_card(d)  # reveal due at 61s, scheduled before that tick
        clock.advance(1500)
        assert [o.kind for o in outcomes] == [OutcomeKind.TIMEOUT]
        assert session.state.time_remaining == 0
        assert session.state.matched_pairs == 1


class _StubbornClock(ManualClock):
    """Ignores cancellation, to exercise the session's own stale-callback guard."""

    def cancel(self, handle: Optional[CancelHandle]) -> None:
        pass


class TestLeavingLevels:
    def test_restart_drops_pending_reveal(self, session, clock, level0):
        state = session.start(level0)
        clock.advance(1000)
        session.select_card(ids_for(state, "cat")[0])
        session.select_card(ids_for(state, "dog")[0])
        generation = session.generation
        fresh = session.restart()
        assert session.generation == generation + 1
        assert fresh.status is SessionStatus.INTRO
        assert fresh.attempts == 0
        clock.advance(1000)
        assert session.status is SessionStatus.PLAYING
        assert session.state.flipped_ids == ()
        assert_flip_invariant(session.state)

    def test_restart_keeps_level(self, session, clock, catalog):
        session.start(catalog.get(5))
        assert session.restart().level == catalog.get(5)

    def test_close_cancels_everything(self, session, clock, level0):
        outcomes: List[Outcome] = []
        session.on_outcome(outcomes.append)
        state = session.start(level0)
        clock.advance(1000)
        session.select_card(ids_for(state, "cat")[0])
        session.select_card(ids_for(state, "cat")[1])
        session.close()
        assert clock.pending == 0
        clock.advance(120_000)
        assert session.state is None
        assert outcomes == []

    def test_advance_starts_next_level(self, session, clock, catalog):
        session.start(catalog.get(0))
        clock.advance(1000)
        state = session.advance(catalog.get(2))
        assert state.level.index == 2
        assert len(state.cards) == 6

    def test_stale_callbacks_are_ignored(self, pool, level0, caplog):
        clock = _StubbornClock()
        session = GameSession(clock, DeckBuilder(random.Random(8)), pool, GameSettings())
        outcomes: List[Outcome] = []
        session.on_outcome(outcomes.append)
        state = session.start(level0)
        clock.advance(1000)
        session.select_card(ids_for(state, "cat")[0])
        session.select_card(ids_for(state, "dog")[0])
        session.restart()
        with caplog.at_level(logging.WARNING, logger="mindmatch.core.session"):
            clock.advance(1500)
        assert "stale" in caplog.text
        assert session.state.attempts == 0
        assert session.state.time_remaining == 60
        assert session.status is SessionStatus.PLAYING
        assert outcomes == []

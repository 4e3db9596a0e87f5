from __future__ import annotations

import logging
import random
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QScrollArea,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from mindmatch.core.clock import CancelHandle
from mindmatch.core.config import GameSettings, unlock_all_levels
from mindmatch.core.deck import DeckBuilder
from mindmatch.core.faces import FacePool
from mindmatch.core.levels import LevelCatalog, LevelDefinition
from mindmatch.core.messages import encouragement, outcome_message
from mindmatch.core.progress import ProgressController
from mindmatch.core.session import (
    GameSession,
    Outcome,
    OutcomeKind,
    SelectionResult,
    SessionState,
    SessionStatus,
)
from mindmatch.ui.board import BoardWidget
from mindmatch.ui.colors import HomeColors
from mindmatch.ui.level_cards import LevelGridWidget
from mindmatch.ui.models import build_level_states
from mindmatch.ui.overlays import LevelFinishedOverlay, ResetConfirmOverlay
from mindmatch.ui.qt_clock import QtClock
from mindmatch.ui.widgets import CalmBackground, Panel, StatTile

logger = logging.getLogger(__name__)

_LOW_TIME_SECONDS = 10


def _pill_button(text: str) -> QPushButton:
    btn = QPushButton(text)
    btn.setCursor(Qt.CursorShape.PointingHandCursor)
    btn.setStyleSheet(
        f"""
        QPushButton {{
            background: rgba(255, 255, 255, 0.9);
            color: {HomeColors.PRIMARY_DARK};
            padding: 10px 18px;
            border: 1px solid {HomeColors.PRIMARY_BORDER};
            border-radius: 16px;
            font-size: 15px;
            font-weight: 700;
        }}
        QPushButton:hover {{ background: #ffffff; border-color: {HomeColors.PRIMARY}; }}
        """
    )
    return btn


class MainWindow(QMainWindow):
    """Home screen with the level grid, and the game screen with the board.

    The window owns one ``GameSession``. Leaving the game screen closes the
    session so no pending reveal or countdown callback outlives it.
    """

    def __init__(
        self,
        catalog: LevelCatalog,
        face_pool: FacePool,
        progress: ProgressController,
        settings: Optional[GameSettings] = None,
    ) -> None:
        super().__init__()
        self._catalog = catalog
        self._face_pool = face_pool
        self._progress = progress
        self._settings = settings or GameSettings()
        self._unlock_all = unlock_all_levels()
        self._rng = random.Random()

        self._clock = QtClock(self)
        self._session = GameSession(self._clock, DeckBuilder(), face_pool, self._settings)
        self._session.subscribe(self._render_state)
        self._session.on_outcome(self._on_outcome)
        self._overlay_handle: Optional[CancelHandle] = None
        self._last_outcome: Optional[Outcome] = None
        self._save_warning = ""

        self.setWindowTitle("Mind Match")
        self.setMinimumSize(960, 720)
        self._build_ui()
        self._show_home_screen()

    # UI construction ------------------------------------------------------

    def _build_ui(self) -> None:
        background = CalmBackground()
        root = QVBoxLayout(background)
        root.setContentsMargins(24, 20, 24, 20)
        self._stack = QStackedWidget()
        self._stack.setStyleSheet("background: transparent;")
        root.addWidget(self._stack)
        self.setCentralWidget(background)

        self._home_screen = self._build_home_screen()
        self._game_screen = self._build_game_screen()
        self._stack.addWidget(self._home_screen)
        self._stack.addWidget(self._game_screen)

        self._reset_overlay = ResetConfirmOverlay(background)
        self._reset_overlay.closed.connect(self._on_reset_closed)
        self._reset_overlay.hide()
        self._finished_overlay = LevelFinishedOverlay(background)
        self._finished_overlay.closed.connect(self._on_finished_closed)
        self._finished_overlay.hide()

    def _build_home_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)
        layout.setSpacing(16)

        header = QHBoxLayout()
        title = QLabel("🧠 Mind Match")
        title.setStyleSheet(f"color: {HomeColors.TEXT_PRIMARY}; font-size: 30px; font-weight: 900;")
        subtitle = QLabel("Tap two cards to find matching pictures")
        subtitle.setStyleSheet(f"color: {HomeColors.PRIMARY}; font-size: 16px; font-weight: 600;")
        titles = QVBoxLayout()
        titles.addWidget(title)
        titles.addWidget(subtitle)
        header.addLayout(titles, 1)

        self._resume_button = _pill_button("Continue")
        self._resume_button.clicked.connect(lambda: self._start_level(self._progress.resume()))
        reset_button = _pill_button("Reset progress")
        reset_button.clicked.connect(self._reset_overlay_show)
        header.addWidget(self._resume_button, 0, Qt.AlignTop)
        header.addWidget(reset_button, 0, Qt.AlignTop)
        layout.addLayout(header)

        self._level_grid = LevelGridWidget(on_level_clicked=self._start_level)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QScrollArea.NoFrame)
        scroll.setStyleSheet("QScrollArea { background: transparent; }")
        scroll.setWidget(self._level_grid)
        layout.addWidget(scroll, 1)
        return screen

    def _build_game_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)
        layout.setSpacing(14)

        header = QHBoxLayout()
        back_button = _pill_button("← Levels")
        back_button.clicked.connect(self._show_home_screen)
        self._level_title = QLabel("")
        self._level_title.setStyleSheet(f"color: {HomeColors.TEXT_PRIMARY}; font-size: 24px; font-weight: 900;")
        restart_button = _pill_button("↻ Restart")
        restart_button.clicked.connect(self._restart_level)
        header.addWidget(back_button, 0)
        header.addStretch(1)
        header.addWidget(self._level_title, 0)
        header.addStretch(1)
        header.addWidget(restart_button, 0)
        layout.addLayout(header)

        stats = QHBoxLayout()
        stats.setSpacing(14)
        self._pairs_card = StatTile("⭐ Pairs", "0/0", HomeColors.AMBER)
        self._attempts_card = StatTile("💗 Attempts", "0", HomeColors.CORAL)
        self._time_card = StatTile("⏱ Time left", "–", HomeColors.PRIMARY_LIGHT)
        for card in (self._pairs_card, self._attempts_card, self._time_card):
            stats.addWidget(card, 1)
        layout.addLayout(stats)

        self._feedback = QLabel("")
        self._feedback.setAlignment(Qt.AlignCenter)
        self._feedback.setStyleSheet(f"color: {HomeColors.PRIMARY_DARK}; font-size: 18px; font-weight: 700;")
        layout.addWidget(self._feedback)

        board_card = Panel()
        board_layout = QVBoxLayout(board_card)
        board_layout.setContentsMargins(18, 18, 18, 18)
        self._board = BoardWidget(self._face_pool, self._on_card_clicked)
        board_layout.addWidget(self._board)
        layout.addWidget(board_card, 1)
        return screen

    # Navigation -----------------------------------------------------------

    def _show_home_screen(self) -> None:
        self._leave_level()
        self._refresh_levels()
        self._stack.setCurrentWidget(self._home_screen)

    def _refresh_levels(self) -> None:
        states = build_level_states(self._catalog, self._progress, self._unlock_all)
        self._level_grid.set_level_states(states)
        self._resume_button.setText(f"Continue • Level {self._progress.resume() + 1}")

    def _start_level(self, index: int) -> None:
        level = self._catalog.get(index)
        if not (self._unlock_all or self._progress.is_unlocked(level.index)):
            logger.info("Level %d is locked", level.index)
            return
        self._cancel_overlay()
        self._set_level_header(level)
        self._stack.setCurrentWidget(self._game_screen)
        self._session.start(level)

    def _restart_level(self) -> None:
        if self._session.state is None:
            return
        self._cancel_overlay()
        self._session.restart()

    def _leave_level(self) -> None:
        self._cancel_overlay()
        self._session.close()
        self._board.set_state(None)

    def _set_level_header(self, level: LevelDefinition) -> None:
        self._level_title.setText(f"Level {level.index + 1}")

    # Session wiring -------------------------------------------------------

    def _on_card_clicked(self, card_id: str) -> None:
        result = self._session.select_card(card_id)
        if result is SelectionResult.MISMATCH:
            self._feedback.setText(f"Almost! {encouragement(self._rng)}")
        elif result is SelectionResult.MATCH:
            self._feedback.setText("Nice work!")

    def _render_state(self, state: SessionState) -> None:
        self._board.set_state(state)
        self._pairs_card.set_value(f"{state.matched_pairs}/{state.level.pair_count}")
        self._attempts_card.set_value(str(state.attempts))
        if state.time_remaining is None:
            self._time_card.set_value("∞")
        else:
            self._time_card.set_value(f"{state.time_remaining}s")
            low = state.time_remaining <= _LOW_TIME_SECONDS
            self._time_card.set_color(HomeColors.TIME_WARNING if low else HomeColors.PRIMARY_LIGHT)
        if state.status is SessionStatus.INTRO:
            self._feedback.setText(f"Get ready… find {state.level.pair_count} pairs")
        elif state.status is SessionStatus.PLAYING and state.attempts == 0 and not state.flipped_ids:
            self._feedback.setText("Tap a card to begin")

    def _on_outcome(self, outcome: Outcome) -> None:
        self._last_outcome = outcome
        saved = self._progress.on_outcome(outcome)
        self._save_warning = "" if saved else "Your progress could not be saved right now; it will be retried."
        self._feedback.setText("🎉" if outcome.kind is OutcomeKind.MATCHED else "⏳")
        self._cancel_overlay()
        self._overlay_handle = self._clock.after(self._settings.completion_delay_ms, self._present_outcome)

    def _present_outcome(self) -> None:
        self._overlay_handle = None
        outcome = self._last_outcome
        if outcome is None:
            return
        self._finished_overlay.present(
            won=outcome.kind is OutcomeKind.MATCHED,
            message=outcome_message(outcome),
            can_advance=outcome.level_index < self._catalog.last_index,
            warning=self._save_warning,
        )

    def _on_finished_closed(self, action: str) -> None:
        outcome = self._last_outcome
        if action == LevelFinishedOverlay.PLAY_AGAIN:
            self._restart_level()
        elif action == LevelFinishedOverlay.NEXT_LEVEL and outcome is not None:
            level = self._catalog.get(outcome.level_index + 1)
            self._set_level_header(level)
            self._session.advance(level)
        else:
            self._show_home_screen()

    def _cancel_overlay(self) -> None:
        self._clock.cancel(self._overlay_handle)
        self._overlay_handle = None
        self._finished_overlay.hide()

    # Progress reset -------------------------------------------------------

    def _reset_overlay_show(self) -> None:
        self._reset_overlay.show()

    def _on_reset_closed(self, confirmed: bool) -> None:
        if confirmed:
            self._progress.reset()
            self._refresh_levels()

    def closeEvent(self, event: QCloseEvent) -> None:
        self._leave_level()
        if not self._progress.flush():
            logger.warning("Progress still unsaved at exit")
        super().closeEvent(event)

"""Puzzle board: one CardTile per card, laid out rows × cols."""

from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import QGridLayout, QLabel, QSizePolicy, QWidget

from mindmatch.core.faces import FacePool
from mindmatch.core.session import SessionState
from mindmatch.ui.colors import HomeColors, blend_hex
from mindmatch.ui.widgets import add_shadow


class CardTile(QLabel):
    """A single card: patterned back when hidden, glyph on its face colour when shown."""

    def __init__(self, card_id: str, on_click: Callable[[str], None], parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._card_id = card_id
        self._on_click = on_click
        self.setAlignment(Qt.AlignCenter)
        self.setCursor(Qt.PointingHandCursor)
        self.setMinimumSize(72, 72)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        add_shadow(self, blur=14, offset_y=4)

    @property
    def card_id(self) -> str:
        return self._card_id

    def show_back(self, color: str) -> None:
        self.setText("?")
        self.setStyleSheet(
            f"""
            QLabel {{
                background: qlineargradient(x1:0, y1:0, x2:1, y2:1,
                    stop:0 {blend_hex(color, "#FFFFFF", 0.2)}, stop:1 {color});
                color: rgba(255, 255, 255, 0.85);
                border-radius: 14px;
                font-size: 34px;
                font-weight: 900;
            }}
            """
        )

    def show_face(self, glyph: str, color: str, matched: bool) -> None:
        self.setText(glyph)
        border = HomeColors.CARD_MATCHED_BORDER if matched else HomeColors.PRIMARY
        self.setStyleSheet(
            f"""
            QLabel {{
                background: {color};
                color: {HomeColors.TEXT_PRIMARY};
                border: 3px solid {border};
                border-radius: 14px;
                font-size: 40px;
            }}
            """
        )

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.LeftButton:
            self._on_click(self._card_id)
        super().mousePressEvent(event)


class BoardWidget(QWidget):
    def __init__(
        self,
        face_pool: FacePool,
        on_card_clicked: Callable[[str], None],
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._face_pool = face_pool
        self._on_card_clicked = on_card_clicked
        self._tiles: dict[str, CardTile] = {}
        self._order: tuple[str, ...] = ()
        self._state: Optional[SessionState] = None
        self._pulse_on = False

        self._layout = QGridLayout(self)
        self._layout.setContentsMargins(8, 8, 8, 8)
        self._layout.setSpacing(12)

        self._pulse_timer = QTimer(self)
        self._pulse_timer.setInterval(900)
        self._pulse_timer.timeout.connect(self._pulse)

    def set_state(self, state: Optional[SessionState]) -> None:
        self._state = state
        if state is None:
            self._clear()
            self._pulse_timer.stop()
            return
        order = tuple(c.id for c in state.cards)
        if order != self._order:
            self._rebuild(state)
        if state.level.distract_animations and not state.is_complete:
            if not self._pulse_timer.isActive():
                self._pulse_timer.start()
        else:
            self._pulse_timer.stop()
            self._pulse_on = False
        self._render()

    def _clear(self) -> None:
        for tile in self._tiles.values():
            self._layout.removeWidget(tile)
            tile.deleteLater()
        self._tiles = {}
        self._order = ()

    def _rebuild(self, state: SessionState) -> None:
        self._clear()
        cols = state.level.cols
        for i, card in enumerate(state.cards):
            tile = CardTile(card.id, self._on_card_clicked, self)
            self._layout.addWidget(tile, i // cols, i % cols)
            self._tiles[card.id] = tile
        self._order = tuple(c.id for c in state.cards)

    def _render(self) -> None:
        if self._state is None:
            return
        similar = self._state.level.similar_faces
        back = HomeColors.CARD_BACK_PULSE if self._pulse_on else HomeColors.CARD_BACK
        for card in self._state.cards:
            tile = self._tiles.get(card.id)
            if tile is None:
                continue
            if card.flipped or card.matched:
                face = self._face_pool.get(card.face_id)
                color = HomeColors.SIMILAR_FACE_BG if similar else face.color
                tile.show_face(face.glyph, color, card.matched)
            else:
                tile.show_back(back)

    def _pulse(self) -> None:
        self._pulse_on = not self._pulse_on
        self._render()

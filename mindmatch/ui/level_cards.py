"""Level picker: one LevelCard per catalog entry, laid out by LevelGridWidget."""

from __future__ import annotations

from typing import Callable, List, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QGridLayout, QLabel, QVBoxLayout, QWidget

from mindmatch.ui.colors import HomeColors, blend_hex, level_color
from mindmatch.ui.models import LevelState
from mindmatch.ui.widgets import add_shadow

_LOCKED_COLOR = "#b0b3c6"


class LevelCard(QWidget):
    """Shows a level's number and board size, a tick once won, or a lock."""

    def __init__(
        self,
        *,
        base_color: str,
        on_click: Callable[[int], None],
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._base_color = base_color
        self._on_click = on_click
        self._level_index: Optional[int] = None
        self._unlocked = False

        self.setObjectName("levelCard")
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        self.setAttribute(Qt.WidgetAttribute.WA_Hover, True)
        self.setMinimumSize(150, 130)

        self._number = QLabel("")
        self._number.setObjectName("levelNumber")
        self._badge = QLabel("")
        self._badge.setObjectName("levelBadge")
        self._badge.setAlignment(Qt.AlignCenter)
        self._detail = QLabel("")
        self._detail.setObjectName("levelDetail")
        self._detail.setAlignment(Qt.AlignCenter)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(14, 10, 14, 12)
        layout.setSpacing(6)
        layout.addWidget(self._number, 0, Qt.AlignLeft)
        layout.addWidget(self._badge, 1)
        layout.addWidget(self._detail)

        add_shadow(self, blur=22, offset_y=8)

    def _restyle(self, color: str, current: bool) -> None:
        border = "3px solid #ffffff" if current else "1px solid rgba(255, 255, 255, 0.45)"
        self.setStyleSheet(
            f"""
            QWidget#levelCard {{
                background: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                    stop:0 {blend_hex(color, "#FFFFFF", 0.2)}, stop:1 {color});
                border-radius: 16px;
                border: {border};
            }}
            QWidget#levelCard:hover {{ border-color: {HomeColors.PRIMARY_DARK}; }}
            QLabel#levelNumber {{ color: white; font-size: 15px; font-weight: 900; }}
            QLabel#levelBadge {{ color: white; font-size: 26px; font-weight: 900; }}
            QLabel#levelDetail {{ color: rgba(255, 255, 255, 0.92); font-size: 13px; font-weight: 700; }}
            """
        )

    def set_state(self, state: LevelState) -> None:
        level = state.level
        self._level_index = level.index
        self._unlocked = state.unlocked
        size = f"{level.rows}×{level.cols}"
        self._number.setText(f"Level {level.index + 1}")

        if not state.unlocked:
            self._badge.setText("🔒")
            self._detail.setText("Win the level before")
            self.setToolTip("")
            self.setCursor(Qt.ArrowCursor)
            self._restyle(_LOCKED_COLOR, current=False)
            return

        self._badge.setText("✓" if state.completed else size)
        if state.completed:
            self._detail.setText(f"Best: {state.best_attempts} attempts")
        else:
            self._detail.setText(f"{level.pair_count} pairs")
        self.setToolTip(f"{level.pair_count} pairs on a {size} board")
        self.setCursor(Qt.PointingHandCursor)
        self._restyle(self._base_color, current=state.is_current)

    def mousePressEvent(self, event) -> None:
        if self._unlocked and self._level_index is not None:
            self._on_click(self._level_index)
        super().mousePressEvent(event)


class LevelGridWidget(QWidget):
    """Level cards in rows of ``columns``, first level top-left."""

    def __init__(
        self,
        *,
        on_level_clicked: Callable[[int], None],
        columns: int = 5,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._on_level_clicked = on_level_clicked
        self._columns = max(1, columns)
        self._cards: List[LevelCard] = []
        self.setStyleSheet("background: transparent;")
        self._grid = QGridLayout(self)
        self._grid.setContentsMargins(16, 12, 16, 12)
        self._grid.setSpacing(18)

    def set_level_states(self, states: List[LevelState]) -> None:
        for index in range(len(self._cards), len(states)):
            card = LevelCard(
                base_color=level_color(index, len(states)),
                on_click=self._on_level_clicked,
                parent=self,
            )
            row, col = divmod(index, self._columns)
            self._grid.addWidget(card, row, col)
            self._cards.append(card)

        for index, card in enumerate(self._cards):
            card.setVisible(index < len(states))
            if index < len(states):
                card.set_state(states[index])

"""In-window overlays (reset confirm, level finished)."""

from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import Qt, QEvent, Signal
from PySide6.QtWidgets import (
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from mindmatch.ui.colors import HomeColors
from mindmatch.ui.widgets import add_shadow


def _themed_card_container(object_name: str, radius: int = 20) -> QFrame:
    container = QFrame()
    container.setObjectName(object_name)
    container.setMinimumWidth(420)
    container.setMaximumWidth(520)
    container.setStyleSheet(
        f"""
        QFrame#{object_name} {{
            background: #ffffff;
            border: 1px solid {HomeColors.PRIMARY_BORDER};
            border-radius: {radius}px;
        }}
        """
    )
    add_shadow(container, blur=20, offset_y=6)
    return container


def _overlay_background(parent: QWidget, on_click: Callable[[], None]) -> QWidget:
    overlay_bg = QWidget(parent)
    overlay_bg.setStyleSheet("background: rgba(0, 0, 0, 0.2);")
    overlay_bg.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
    overlay_bg.setMinimumSize(1, 1)
    overlay_bg.mousePressEvent = lambda e: on_click()
    return overlay_bg


_BUTTON_STYLES = {
    True: (
        f"background: qlineargradient(x1:0, y1:0, x2:1, y2:1, stop:0 {HomeColors.PRIMARY_LIGHT}, "
        f"stop:1 {HomeColors.PRIMARY}); color: white; border: none; font-weight: 700;",
        f"background: {HomeColors.PRIMARY_DARK};",
    ),
    False: (
        f"background: #ffffff; color: {HomeColors.TEXT_PRIMARY}; "
        f"border: 1px solid {HomeColors.PRIMARY_BORDER}; font-weight: 600;",
        f"border-color: {HomeColors.PRIMARY}; color: {HomeColors.PRIMARY};",
    ),
}


def _button(text: str, primary: bool) -> QPushButton:
    normal, hover = _BUTTON_STYLES[primary]
    btn = QPushButton(text)
    btn.setStyleSheet(
        f"QPushButton {{ {normal} padding: 12px 18px; border-radius: 12px; font-size: 15px; }}"
        f"QPushButton:hover {{ {hover} }}"
    )
    btn.setCursor(Qt.CursorShape.PointingHandCursor)
    btn.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
    return btn


class _Overlay(QWidget):
    """Covers its parent; tracks the parent's size while shown."""

    def _build_frame(self, object_name: str, on_background_click: Callable[[], None]) -> QVBoxLayout:
        main_layout = QGridLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setRowStretch(0, 1)
        main_layout.setColumnStretch(0, 1)
        main_layout.addWidget(_overlay_background(self, on_background_click), 0, 0)

        container = _themed_card_container(object_name)
        content = QVBoxLayout(container)
        content.setContentsMargins(28, 24, 28, 24)
        content.setSpacing(18)
        main_layout.addWidget(container, 0, 0, 1, 1, Qt.AlignCenter)
        return content

    def _header(self, icon: str, text: str) -> tuple[QHBoxLayout, QLabel, QLabel]:
        header = QHBoxLayout()
        header.setSpacing(12)
        icon_label = QLabel(icon)
        icon_label.setFixedSize(44, 44)
        icon_label.setAlignment(Qt.AlignCenter)
        icon_label.setStyleSheet(
            f"background: {HomeColors.BG_MIDDLE}; border-radius: 22px; color: {HomeColors.PRIMARY}; font-size: 22px;"
        )
        title = QLabel(text)
        title.setStyleSheet(f"color: {HomeColors.PRIMARY}; font-size: 20px; font-weight: 800;")
        header.addWidget(icon_label, 0)
        header.addWidget(title, 0)
        header.addStretch(1)
        return header, icon_label, title

    def _update_geometry(self) -> None:
        parent = self.parentWidget()
        if parent is not None:
            self.setGeometry(parent.rect())

    def eventFilter(self, obj: QWidget, event: QEvent) -> bool:
        if obj is self.parentWidget() and event.type() == QEvent.Type.Resize:
            self._update_geometry()
        return super().eventFilter(obj, event)

    def showEvent(self, event) -> None:
        super().showEvent(event)
        self._update_geometry()
        self.raise_()
        parent = self.parentWidget()
        if parent is not None:
            parent.installEventFilter(self)

    def hideEvent(self, event) -> None:
        parent = self.parentWidget()
        if parent is not None:
            parent.removeEventFilter(self)
        super().hideEvent(event)


class ResetConfirmOverlay(_Overlay):
    closed = Signal(bool)  # True if the user confirmed

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        content = self._build_frame("resetContainer", lambda: self._finish(False))
        header, _, _ = self._header("↻", "Reset progress")
        content.addLayout(header)

        msg = QLabel("Lock all levels again and forget best scores?")
        msg.setStyleSheet(f"color: {HomeColors.TEXT_PRIMARY}; font-size: 15px; font-weight: 500;")
        msg.setWordWrap(True)
        content.addWidget(msg)

        row = QHBoxLayout()
        row.setSpacing(10)
        cancel_btn = _button("Keep my progress", primary=False)
        cancel_btn.clicked.connect(lambda: self._finish(False))
        confirm_btn = _button("Reset", primary=True)
        confirm_btn.clicked.connect(lambda: self._finish(True))
        row.addWidget(cancel_btn, 1)
        row.addWidget(confirm_btn, 1)
        content.addLayout(row)

    def _finish(self, confirmed: bool) -> None:
        self.hide()
        self.closed.emit(confirmed)


class LevelFinishedOverlay(_Overlay):
    """Shown after a win or a timeout. Emits the chosen action."""

    PLAY_AGAIN = "play_again"
    NEXT_LEVEL = "next_level"
    BACK = "back"

    closed = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        content = self._build_frame("levelFinishedContainer", lambda: self._finish(self.BACK))
        header, self._icon, self._title = self._header("🎉", "")
        content.addLayout(header)

        self._message = QLabel("")
        self._message.setStyleSheet(f"color: {HomeColors.TEXT_PRIMARY}; font-size: 15px; font-weight: 500;")
        self._message.setWordWrap(True)
        content.addWidget(self._message)

        self._warning = QLabel("")
        self._warning.setStyleSheet(f"color: {HomeColors.TIME_WARNING}; font-size: 13px;")
        self._warning.setWordWrap(True)
        self._warning.setVisible(False)
        content.addWidget(self._warning)

        row = QHBoxLayout()
        row.setSpacing(10)
        back_btn = _button("Back to levels", primary=False)
        back_btn.clicked.connect(lambda: self._finish(self.BACK))
        again_btn = _button("Play Again", primary=False)
        again_btn.clicked.connect(lambda: self._finish(self.PLAY_AGAIN))
        self._next_btn = _button("Next Level", primary=True)
        self._next_btn.clicked.connect(lambda: self._finish(self.NEXT_LEVEL))
        row.addWidget(back_btn, 1)
        row.addWidget(again_btn, 1)
        row.addWidget(self._next_btn, 1)
        content.addLayout(row)

    def present(self, *, won: bool, message: str, can_advance: bool, warning: str = "") -> None:
        self._icon.setText("🎉" if won else "⏳")
        self._title.setText("Wonderful Job!" if won else "Time's up")
        self._message.setText(message)
        self._warning.setText(warning)
        self._warning.setVisible(bool(warning))
        self._next_btn.setVisible(won and can_advance)
        self.show()

    def _finish(self, action: str) -> None:
        self.hide()
        self.closed.emit(action)

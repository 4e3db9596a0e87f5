"""Backdrop, panels and stat tiles shared by the home and game screens."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QLinearGradient, QPainter, QRadialGradient
from PySide6.QtWidgets import QFrame, QGraphicsDropShadowEffect, QLabel, QVBoxLayout, QWidget

from mindmatch.ui.colors import HomeColors

# (x ratio, y ratio, radius, alpha) of the soft light spots behind the screens
_GLOWS: Sequence[Tuple[float, float, int, int]] = (
    (0.82, 0.12, 240, 80),
    (0.10, 0.85, 180, 60),
    (0.50, 0.55, 320, 30),
)


def add_shadow(widget: QWidget, blur: int, offset_y: int, rgba: Tuple[int, int, int, int] = HomeColors.SHADOW_RGBA) -> None:
    effect = QGraphicsDropShadowEffect(widget)
    effect.setBlurRadius(blur)
    effect.setOffset(0, offset_y)
    effect.setColor(QColor(*rgba))
    widget.setGraphicsEffect(effect)


class CalmBackground(QWidget):
    """Diagonal pastel gradient with a few blurred light spots."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)

    def paintEvent(self, event) -> None:
        w, h = self.width(), self.height()
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)

        base = QLinearGradient(0, 0, w, h)
        for stop, color in ((0.0, HomeColors.BG_TOP), (0.55, HomeColors.BG_MIDDLE), (1.0, HomeColors.BG_BOTTOM)):
            base.setColorAt(stop, QColor(color))
        painter.fillRect(self.rect(), base)

        painter.setPen(Qt.NoPen)
        for x_ratio, y_ratio, radius, alpha in _GLOWS:
            center = QPointF(w * x_ratio, h * y_ratio)
            glow = QRadialGradient(center, radius)
            glow.setColorAt(0.0, QColor(255, 255, 255, alpha))
            glow.setColorAt(1.0, QColor(255, 255, 255, 0))
            painter.setBrush(glow)
            painter.drawEllipse(center, radius, radius)
        painter.end()


class Panel(QFrame):
    """Frosted white panel that hosts the board and overlays."""

    def __init__(self, radius: int = 20, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("panel")
        self.setStyleSheet(
            f"QFrame#panel {{ background: {HomeColors.CARD_BG}; "
            f"border: 1px solid {HomeColors.CARD_BORDER}; border-radius: {radius}px; }}"
        )
        add_shadow(self, blur=28, offset_y=8)


class StatTile(QFrame):
    """Coloured tile showing one number (pairs found, attempts, time left)."""

    def __init__(self, caption: str, value: str, color: str, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("statTile")

        self._caption = QLabel(caption)
        self._caption.setStyleSheet("color: rgba(255, 255, 255, 0.9); font-size: 14px; font-weight: 600;")
        self._value = QLabel(value)
        self._value.setStyleSheet("color: white; font-size: 28px; font-weight: 900;")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(18, 12, 18, 12)
        layout.setSpacing(2)
        layout.addWidget(self._caption)
        layout.addWidget(self._value)

        self.set_color(color)
        add_shadow(self, blur=16, offset_y=4, rgba=(0, 0, 0, 45))

    def set_value(self, value: str) -> None:
        self._value.setText(value)

    def set_color(self, color: str) -> None:
        darker = QColor(color).darker(115).name()
        self.setStyleSheet(
            f"QFrame#statTile {{ border: none; border-radius: 16px; "
            f"background: qlineargradient(x1:0, y1:0, x2:1, y2:1, stop:0 {color}, stop:1 {darker}); }}"
        )

"""Palette and colour helpers for the Mind Match screens."""

from __future__ import annotations

from typing import Tuple


class HomeColors:
    """Warm, low-glare palette with large contrast between card backs and faces."""

    BG_TOP = "#fdf6ec"
    BG_MIDDLE = "#f1e8f8"
    BG_BOTTOM = "#dcecfb"

    PRIMARY = "#5c6bc0"
    PRIMARY_LIGHT = "#8e99f3"
    PRIMARY_DARK = "#26418f"
    PRIMARY_BORDER = "rgba(92, 107, 192, 0.25)"

    CORAL = "#ff8a80"
    AMBER = "#ffb74d"
    LAVENDER = "#ba68c8"

    CARD_BG = "rgba(255, 255, 255, 0.88)"
    CARD_BORDER = "rgba(255, 255, 255, 0.65)"
    SHADOW_RGBA = (38, 65, 143, 40)

    TEXT_PRIMARY = "#2b2d42"

    # Puzzle cards
    CARD_BACK = "#7986cb"
    CARD_BACK_PULSE = "#9fa8da"
    CARD_MATCHED_BORDER = "#81c784"
    SIMILAR_FACE_BG = "#f5f5f5"

    TIME_WARNING = "#e57373"


def _parse_hex(value: str) -> Tuple[int, int, int]:
    if not (value.startswith("#") and len(value) == 7):
        raise ValueError(f"not a #RRGGBB colour: {value!r}")
    return int(value[1:3], 16), int(value[3:5], 16), int(value[5:7], 16)


def blend_hex(a: str, b: str, t: float) -> str:
    """Mix ``a`` toward ``b`` by ``t`` (clamped to 0..1). Unparseable input returns ``a``."""
    a = a.strip()
    try:
        start = _parse_hex(a)
        end = _parse_hex(b.strip())
        t = max(0.0, min(1.0, float(t)))
    except (TypeError, ValueError):
        return a
    r, g, bl = (int(s + (e - s) * t) for s, e in zip(start, end))
    return f"#{r:02X}{g:02X}{bl:02X}"


def level_color(index: int, level_count: int) -> str:
    """Level card tint: indigo for the first levels, through lavender, to coral for the last."""
    if level_count <= 1:
        return HomeColors.PRIMARY_LIGHT
    t = max(0, min(index, level_count - 1)) / float(level_count - 1)
    if t < 0.5:
        return blend_hex(HomeColors.PRIMARY_LIGHT, HomeColors.LAVENDER, t * 2)
    return blend_hex(HomeColors.LAVENDER, HomeColors.CORAL, (t - 0.5) * 2)

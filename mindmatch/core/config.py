"""Game tuning loaded from YAML, with an optional per-user override file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def user_home() -> Path:
    """Directory holding per-user files (progress, settings override)."""
    override = os.environ.get("MINDMATCH_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".mindmatch"


def unlock_all_levels() -> bool:
    return os.environ.get("MINDMATCH_UNLOCK_ALL") == "1"


@dataclass(frozen=True)
class GameSettings:
    level_count: int = 50
    intro_ms: int = 1000
    match_reveal_ms: int = 1000
    mismatch_reveal_ms: int = 1500
    completion_delay_ms: int = 1000
    base_time_limit_seconds: int = 60
    min_time_limit_seconds: int = 15
    distract_from_level: int = 10
    similar_from_level: int = 20


def _read_mapping(path: Path) -> Dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name}: expected a YAML mapping of settings")
    return raw


def _apply(settings: GameSettings, raw: Dict[str, Any], source: Path) -> GameSettings:
    known = {f.name for f in fields(GameSettings)}
    values: Dict[str, int] = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown setting %r in %s", key, source)
            continue
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{source.name}: '{key}' must be a non-negative integer")
        values[key] = value
    return replace(settings, **values)


def _validate(settings: GameSettings) -> GameSettings:
    if settings.level_count < 1:
        raise ValueError("level_count must be at least 1")
    if settings.min_time_limit_seconds > settings.base_time_limit_seconds:
        raise ValueError("min_time_limit_seconds cannot exceed base_time_limit_seconds")
    return settings


def load_settings(
    defaults_path: Optional[Path] = None,
    override_path: Optional[Path] = None,
) -> GameSettings:
    """Load packaged defaults, then layer the user's override file on top."""
    defaults_path = defaults_path or DATA_DIR / "settings.yaml"
    override_path = override_path or user_home() / "settings.yaml"

    settings = GameSettings()
    if defaults_path.exists():
        settings = _apply(settings, _read_mapping(defaults_path), defaults_path)
    else:
        logger.warning("Settings file not found: %s; using built-in defaults", defaults_path)

    if override_path.exists():
        settings = _apply(settings, _read_mapping(override_path), override_path)
        logger.info("Applied settings override from %s", override_path)
    return _validate(settings)

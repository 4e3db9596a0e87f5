from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import yaml

from mindmatch.core.config import DATA_DIR


@dataclass(frozen=True)
class Face:
    """The picture a pair of cards share."""

    key: str
    name: str
    glyph: str
    color: str


class FacePool:
    """Ordered list of distinct faces. Levels draw from the front."""

    def __init__(self, faces: Sequence[Face]) -> None:
        if not faces:
            raise ValueError("Face pool is empty")
        seen: set[str] = set()
        for face in faces:
            if face.key in seen:
                raise ValueError(f"Duplicate face key: {face.key!r}")
            seen.add(face.key)
        self._faces = tuple(faces)

    def __len__(self) -> int:
        return len(self._faces)

    def __iter__(self) -> Iterator[Face]:
        return iter(self._faces)

    def __getitem__(self, index: int) -> Face:
        return self._faces[index]

    def take(self, count: int) -> List[Face]:
        return list(self._faces[:count])

    def get(self, key: str) -> Face:
        for face in self._faces:
            if face.key == key:
                return face
        raise KeyError(key)

    @classmethod
    def from_keys(cls, keys: Sequence[str]) -> "FacePool":
        """Build a bare pool from plain tokens (glyph = name = key)."""
        return cls([Face(key=k, name=k, glyph=k, color="#FFFFFF") for k in keys])

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "FacePool":
        path = path or DATA_DIR / "faces.yaml"
        if not path.exists():
            raise FileNotFoundError(f"Face pool file not found: {path}")
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not raw or not isinstance(raw, dict) or not isinstance(raw.get("faces"), list):
            raise ValueError(f"{path.name}: expected YAML with a 'faces' list")

        faces: List[Face] = []
        for i, entry in enumerate(raw["faces"]):
            if not isinstance(entry, dict):
                raise ValueError(f"{path.name}: face #{i} is not a mapping")
            missing = [f for f in ("key", "name", "glyph", "color") if not entry.get(f)]
            if missing:
                raise ValueError(f"{path.name}: face #{i} missing {', '.join(missing)}")
            faces.append(
                Face(
                    key=str(entry["key"]).strip(),
                    name=str(entry["name"]).strip(),
                    glyph=str(entry["glyph"]),
                    color=str(entry["color"]).strip(),
                )
            )
        return cls(faces)

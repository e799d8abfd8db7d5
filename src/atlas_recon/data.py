"""Core data structures used throughout the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from atlas_recon.errors import CropError

# Decoded atlas, (height, width, 4) uint8 RGBA, read-only once cached.
Raster = np.ndarray
# Ordered cells of one raster, bottom row first, left to right.
Grid = Tuple[np.ndarray, ...]


class CropPolicy(str, Enum):
    """How much of the padded working canvas survives into the output."""

    NONE = "none"
    DEFAULT = "default"
    FULL = "full"

    @classmethod
    def parse(cls, value: "CropPolicy | str") -> "CropPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            choices = ", ".join(policy.value for policy in cls)
            raise CropError(str(value), f"unknown crop policy (expected one of: {choices})") from None


@dataclass(frozen=True)
class SpriteDescriptor:
    """One sprite entry of the manifest."""

    name: str
    atlas_name: str
    width: int
    height: int
    transparent_index: int
    cell_indices: Tuple[int, ...]


@dataclass(frozen=True)
class AtlasManifest:
    """Parsed atlas description, immutable for the session."""

    cell_size: int
    padding: int
    sprites: Tuple[SpriteDescriptor, ...]
    path: Optional[Path] = None

    @property
    def inner_size(self) -> int:
        return self.cell_size - 2 * self.padding

    def names(self) -> List[str]:
        return [sprite.name for sprite in self.sprites]


@dataclass(frozen=True)
class SpriteLookup:
    """Result of a sprite lookup, tagged with its manifest position."""

    index: int
    descriptor: SpriteDescriptor


@dataclass
class Canvas:
    """Composed sprite image with its page offset and descriptive metadata."""

    image: np.ndarray
    offset: Tuple[int, int] = (0, 0)
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def size(self) -> Tuple[int, int]:
        height, width = self.image.shape[:2]
        return (width, height)


@dataclass(frozen=True)
class SpriteStats:
    """Derived canvas sizes for one sprite, rendered as "WxH" strings."""

    name: str
    none: str
    default: str
    full: str
    delta: str

    def as_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "none": self.none,
            "default": self.default,
            "full": self.full,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class EncodedSprite:
    """Encoded sprite blob plus the informational values served alongside it."""

    name: str
    data: bytes
    width: int
    height: int
    crop: CropPolicy
    format: str
    extension: str
    mime_type: str

    @property
    def length(self) -> int:
        return len(self.data)

    @property
    def filename(self) -> str:
        return f"{self.name}.{self.extension}"


@dataclass
class ExportReport:
    """Outcome of a batch export."""

    output_dir: Path
    written: List[Path] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures

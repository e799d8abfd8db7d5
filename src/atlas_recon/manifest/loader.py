"""Atlas manifest parsing and validation."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from atlas_recon.data import AtlasManifest, SpriteDescriptor, SpriteLookup
from atlas_recon.errors import ManifestError, NotFoundError

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ("cellSize", "padding", "textureDataList")
_SPRITE_KEYS = ("name", "atlasName", "width", "height", "transparentIndex", "cellIndexList")


def grid_positions(width: int, height: int, inner_size: int) -> int:
    """Number of cell placements needed to cover a width x height sprite."""

    return math.ceil(width / inner_size) * math.ceil(height / inner_size)


def _require_int(path: Optional[Path], value: Any, label: str) -> int:
    # bool is an int subclass but never a valid size or index here
    if isinstance(value, bool) or not isinstance(value, int):
        raise ManifestError(path, f"{label} must be an integer, got {value!r}")
    return value


def _parse_sprite(path: Optional[Path], position: int, raw: Any) -> SpriteDescriptor:
    if not isinstance(raw, dict):
        raise ManifestError(path, f"textureDataList[{position}] is not an object")
    missing = [key for key in _SPRITE_KEYS if key not in raw]
    if missing:
        raise ManifestError(path, f"textureDataList[{position}] is missing {', '.join(missing)}")

    name = raw["name"]
    atlas_name = raw["atlasName"]
    if not isinstance(name, str) or not name:
        raise ManifestError(path, f"textureDataList[{position}].name must be a non-empty string")
    if not isinstance(atlas_name, str) or not atlas_name:
        raise ManifestError(path, f"[{name}] atlasName must be a non-empty string")

    width = _require_int(path, raw["width"], f"[{name}] width")
    height = _require_int(path, raw["height"], f"[{name}] height")
    if width <= 0 or height <= 0:
        raise ManifestError(path, f"[{name}] has non-positive size {width}x{height}")

    cells = raw["cellIndexList"]
    if not isinstance(cells, list):
        raise ManifestError(path, f"[{name}] cellIndexList must be a list")

    return SpriteDescriptor(
        name=name,
        atlas_name=atlas_name,
        width=width,
        height=height,
        transparent_index=_require_int(path, raw["transparentIndex"], f"[{name}] transparentIndex"),
        cell_indices=tuple(_require_int(path, cell, f"[{name}] cell index") for cell in cells),
    )


def parse_manifest(raw: Any, path: Union[str, Path, None] = None) -> AtlasManifest:
    """Validate decoded manifest data and build the typed manifest.

    ``cellSize``, ``padding`` and ``textureDataList`` have no defaults: cell
    math is meaningless without them, so their absence is fatal.
    """

    source = Path(path) if path is not None else None
    if not isinstance(raw, dict):
        raise ManifestError(source, "top-level value must be an object")
    missing = [key for key in _REQUIRED_KEYS if key not in raw]
    if missing:
        raise ManifestError(source, f"missing required key(s): {', '.join(missing)}")

    cell_size = _require_int(source, raw["cellSize"], "cellSize")
    padding = _require_int(source, raw["padding"], "padding")
    if cell_size <= 0:
        raise ManifestError(source, f"cellSize must be positive, got {cell_size}")
    if padding < 0 or 2 * padding >= cell_size:
        raise ManifestError(source, f"padding must be in [0, cellSize/2), got {padding}")

    entries = raw["textureDataList"]
    if not isinstance(entries, list):
        raise ManifestError(source, "textureDataList must be a list")

    sprites: List[SpriteDescriptor] = []
    seen: Dict[str, int] = {}
    for position, entry in enumerate(entries):
        sprite = _parse_sprite(source, position, entry)
        if sprite.name in seen:
            raise ManifestError(
                source, f"duplicate sprite name [{sprite.name}] at {seen[sprite.name]} and {position}"
            )
        seen[sprite.name] = position
        sprites.append(sprite)

    return AtlasManifest(cell_size=cell_size, padding=padding, sprites=tuple(sprites), path=source)


def load_manifest(path: Union[str, Path]) -> AtlasManifest:
    """Load and validate a manifest JSON file."""

    manifest_path = Path(path)
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(manifest_path, f"unreadable ({exc})") from exc
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(manifest_path, f"invalid JSON ({exc})") from exc

    manifest = parse_manifest(raw, manifest_path)
    logger.info(
        "Loaded manifest %s: %d sprites, cell %d, padding %d",
        manifest_path,
        len(manifest.sprites),
        manifest.cell_size,
        manifest.padding,
    )
    return manifest


def sprite_by_name(manifest: AtlasManifest, name: str) -> SpriteLookup:
    """Find a sprite by name (linear scan, manifests are small)."""

    for index, sprite in enumerate(manifest.sprites):
        if sprite.name == name:
            return SpriteLookup(index=index, descriptor=sprite)
    raise NotFoundError(name)


def sprite_by_index(manifest: AtlasManifest, index: int) -> SpriteLookup:
    """Find a sprite by manifest position. Negative positions are rejected."""

    if not 0 <= index < len(manifest.sprites):
        raise NotFoundError(index)
    return SpriteLookup(index=index, descriptor=manifest.sprites[index])

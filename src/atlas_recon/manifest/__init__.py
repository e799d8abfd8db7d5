"""Atlas manifest model."""

from atlas_recon.manifest.loader import (
    grid_positions,
    load_manifest,
    parse_manifest,
    sprite_by_index,
    sprite_by_name,
)

__all__ = [
    "grid_positions",
    "load_manifest",
    "parse_manifest",
    "sprite_by_index",
    "sprite_by_name",
]

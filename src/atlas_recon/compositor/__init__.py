"""Sprite compositing and crop arithmetic."""

from atlas_recon.compositor.sprite import (
    CanvasGeometry,
    canvas_geometry,
    compose,
    iter_placements,
    stats_for,
)

__all__ = [
    "CanvasGeometry",
    "canvas_geometry",
    "compose",
    "iter_placements",
    "stats_for",
]

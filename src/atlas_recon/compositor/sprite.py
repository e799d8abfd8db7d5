"""Sprite compositing from grid cells, with padding-aware crop policies."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from atlas_recon.data import Canvas, CropPolicy, Grid, SpriteDescriptor, SpriteStats
from atlas_recon.errors import (
    BadCellIndexError,
    CropError,
    IndexListTooLongError,
    IndexListTooShortError,
)


@dataclass(frozen=True)
class CanvasGeometry:
    """Size arithmetic for one sprite's padded working canvas.

    Consecutive cells are placed ``inner`` pixels apart, so neighbours overlap
    by ``padding`` on each shared edge and each cell's border covers the seam
    of the one next to it.
    """

    width: int
    height: int
    cell_size: int
    padding: int

    @property
    def inner(self) -> int:
        return self.cell_size - 2 * self.padding

    @property
    def grid_width(self) -> int:
        return math.ceil(self.width / self.inner) * self.inner

    @property
    def grid_height(self) -> int:
        return math.ceil(self.height / self.inner) * self.inner

    @property
    def delta_width(self) -> int:
        return self.grid_width - self.width

    @property
    def delta_height(self) -> int:
        return self.grid_height - self.height

    @property
    def border_width(self) -> int:
        return self.grid_width + 2 * self.padding

    @property
    def border_height(self) -> int:
        return self.grid_height + 2 * self.padding

    @property
    def positions(self) -> int:
        return (self.grid_width // self.inner) * (self.grid_height // self.inner)

    def crop_box(self, policy: CropPolicy) -> Tuple[int, int, int, int]:
        """Return the ``(x, y, width, height)`` kept by a crop policy."""

        if policy is CropPolicy.NONE:
            return (0, 0, self.border_width, self.border_height)
        if policy is CropPolicy.DEFAULT:
            return (self.padding, self.padding, self.grid_width, self.grid_height)
        # rows are built bottom-up, so the rounding overshoot sits at the top
        return (self.padding, self.delta_height + self.padding, self.width, self.height)


def canvas_geometry(descriptor: SpriteDescriptor, cell_size: int, padding: int) -> CanvasGeometry:
    return CanvasGeometry(
        width=descriptor.width,
        height=descriptor.height,
        cell_size=cell_size,
        padding=padding,
    )


def iter_placements(geometry: CanvasGeometry) -> Iterator[Tuple[int, int]]:
    """Yield cell targets bottom row first, left to right within a row."""

    step = geometry.inner
    for y in range(geometry.grid_height - step, -1, -step):
        for x in range(0, geometry.grid_width, step):
            yield (x, y)


def _size_label(width: int, height: int) -> str:
    return f"{width}x{height}"


def _crop(image: np.ndarray, geometry: CanvasGeometry, policy: CropPolicy) -> np.ndarray:
    x, y, width, height = geometry.crop_box(policy)
    canvas_height, canvas_width = image.shape[:2]
    if x < 0 or y < 0 or x + width > canvas_width or y + height > canvas_height:
        raise CropError(
            policy.value,
            f"box {width}x{height}+{x}+{y} exceeds canvas {canvas_width}x{canvas_height}",
        )
    return image[y : y + height, x : x + width].copy()


def compose(
    descriptor: SpriteDescriptor,
    grid: Grid,
    cell_size: int,
    padding: int,
    crop: CropPolicy | str = CropPolicy.DEFAULT,
) -> Canvas:
    """Assemble a sprite from grid cells and apply the crop policy.

    Cells are pasted by overwrite, not blended: overlapping borders must be
    replaced by the later placement so no seam shows.
    """

    policy = CropPolicy.parse(crop)
    geometry = canvas_geometry(descriptor, cell_size, padding)
    image = np.zeros((geometry.border_height, geometry.border_width, 4), dtype=np.uint8)

    cells = descriptor.cell_indices
    consumed = 0
    for x, y in iter_placements(geometry):
        if consumed >= len(cells):
            raise IndexListTooShortError(descriptor.name, geometry.positions, len(cells))
        cell = cells[consumed]
        consumed += 1
        if cell == descriptor.transparent_index:
            continue
        if not 0 <= cell < len(grid):
            raise BadCellIndexError(descriptor.name, cell, len(grid))
        image[y : y + cell_size, x : x + cell_size] = grid[cell]
    if consumed != len(cells):
        raise IndexListTooLongError(descriptor.name, geometry.positions, len(cells))

    return Canvas(
        image=_crop(image, geometry, policy),
        offset=(0, 0),
        metadata={
            "width": str(descriptor.width),
            "height": str(descriptor.height),
            "crop": policy.value,
        },
    )


def stats_for(descriptor: SpriteDescriptor, cell_size: int, padding: int) -> SpriteStats:
    """Report the canvas size under every crop policy plus the rounding overshoot."""

    geometry = canvas_geometry(descriptor, cell_size, padding)
    return SpriteStats(
        name=descriptor.name,
        none=_size_label(geometry.border_width, geometry.border_height),
        default=_size_label(geometry.grid_width, geometry.grid_height),
        full=_size_label(geometry.width, geometry.height),
        delta=_size_label(geometry.delta_width, geometry.delta_height),
    )

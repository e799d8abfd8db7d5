"""Splits an atlas raster into its numbered grid cells."""

from __future__ import annotations

from typing import Iterator, List, Tuple

import numpy as np

from atlas_recon.data import Grid, Raster


def iter_cell_origins(width: int, height: int, cell_size: int) -> Iterator[Tuple[int, int]]:
    """Yield cell origins bottom row first, left to right within a row.

    This is the numbering the manifest's cell index lists assume.
    """

    y = height - cell_size
    while y >= 0:
        for x in range(0, width, cell_size):
            yield (x, y)
        y -= cell_size


def slice_raster(raster: Raster, cell_size: int) -> Grid:
    """Copy every ``cell_size`` square of ``raster`` into an ordered grid.

    The raster is trusted to be an exact multiple of ``cell_size``; cells are
    copies so the source raster is never aliased.
    """

    height, width = raster.shape[:2]
    cells: List[np.ndarray] = []
    for x, y in iter_cell_origins(width, height, cell_size):
        cell = raster[y : y + cell_size, x : x + cell_size].copy()
        cell.setflags(write=False)
        cells.append(cell)
    return tuple(cells)

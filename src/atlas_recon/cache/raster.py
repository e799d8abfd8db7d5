"""Session-scoped cache of decoded atlas rasters and their sliced grids."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from atlas_recon.data import Grid, Raster
from atlas_recon.grid import slice_raster
from atlas_recon.io import load_raster

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    """One cached atlas: the raster and, once sliced, its grid."""

    raster: Raster
    grid: Optional[Grid] = None
    cell_size: int = 0


class RasterCache:
    """Loads each atlas once per session and owns it until ``release_all``.

    Entries are keyed by path string. Population is serialized per key, so
    concurrent first requests for the same atlas decode and slice it once;
    requests for different atlases do not block each other.
    """

    def __init__(self, loader: Callable[[Path], Raster] = load_raster) -> None:
        self._loader = loader
        self._slots: Dict[str, _Slot] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self.decode_count = 0
        self.slice_count = 0

    def _key_lock(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def _slot(self, key: str) -> _Slot:
        slot = self._slots.get(key)
        if slot is not None:
            logger.debug("Raster cache hit: %s", key)
            return slot
        with self._key_lock(key):
            slot = self._slots.get(key)
            if slot is None:
                logger.debug("Raster cache miss: %s", key)
                raster = self._loader(Path(key))
                slot = _Slot(raster=raster)
                with self._guard:
                    self._slots[key] = slot
                    self.decode_count += 1
        return slot

    def get(self, path: Union[str, Path]) -> Raster:
        """Return the decoded raster for ``path``, decoding it on first use."""

        return self._slot(str(path)).raster

    def grid(self, path: Union[str, Path], cell_size: int) -> Grid:
        """Return the grid for the raster at ``path``, slicing it on first use."""

        key = str(path)
        slot = self._slot(key)
        if slot.grid is not None and slot.cell_size == cell_size:
            return slot.grid
        with self._key_lock(key):
            if slot.grid is None or slot.cell_size != cell_size:
                slot.grid = slice_raster(slot.raster, cell_size)
                slot.cell_size = cell_size
                with self._guard:
                    self.slice_count += 1
                logger.info("Sliced %s into %d cells of %dpx", key, len(slot.grid), cell_size)
        return slot.grid

    def paths(self) -> List[str]:
        with self._guard:
            return list(self._slots)

    def __contains__(self, path: object) -> bool:
        return str(path) in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def release_all(self) -> None:
        """Drop every cached raster together with its grid."""

        with self._guard:
            count = len(self._slots)
            for slot in self._slots.values():
                slot.grid = None
            self._slots.clear()
            self._locks.clear()
        if count:
            logger.info("Released %d cached atlas(es)", count)

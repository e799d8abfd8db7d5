"""Raster and grid caching."""

from atlas_recon.cache.raster import RasterCache

__all__ = ["RasterCache"]

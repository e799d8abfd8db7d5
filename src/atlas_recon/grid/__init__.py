"""Grid slicing of atlas rasters."""

from atlas_recon.grid.slicer import iter_cell_origins, slice_raster

__all__ = ["iter_cell_origins", "slice_raster"]

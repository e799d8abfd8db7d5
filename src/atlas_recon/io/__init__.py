"""Image I/O utilities."""

from atlas_recon.io.images import (
    encode_canvas,
    load_raster,
    mime_type_for,
    read_metadata,
    resolve_format,
    write_blob,
)

__all__ = [
    "encode_canvas",
    "load_raster",
    "mime_type_for",
    "read_metadata",
    "resolve_format",
    "write_blob",
]

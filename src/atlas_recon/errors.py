"""Error types raised by the reconstruction pipeline.

All of them describe bad data or configuration; none is transient, so no
caller is expected to retry.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union


class AtlasReconError(Exception):
    """Base class for every error raised by atlas_recon."""


class ManifestError(AtlasReconError):
    """Manifest file is unreadable, malformed or misses required fields."""

    def __init__(self, path: Union[str, Path, None], reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Bad manifest [{path}]: {reason}" if path else f"Bad manifest: {reason}")


class NotFoundError(AtlasReconError):
    """No sprite matches the requested name or index."""

    def __init__(self, key: Union[str, int]) -> None:
        self.key = key
        super().__init__(f"Sprite not found [{key}]")


class AtlasIOError(AtlasReconError, OSError):
    """Atlas raster file could not be read."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot read atlas [{path}]: {reason}")


class DecodeError(AtlasReconError):
    """Atlas raster file was read but could not be decoded."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot decode atlas [{path}]: {reason}")


class IndexListError(AtlasReconError):
    """Cell index list length disagrees with the sprite's grid positions.

    Too-short and too-long lists raise the two subclasses below; callers that
    only care about a length mismatch should catch this base class.
    """

    def __init__(self, sprite: str, expected: int, actual: int, message: str) -> None:
        self.sprite = sprite
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class IndexListTooShortError(IndexListError):
    def __init__(self, sprite: str, expected: int, actual: int) -> None:
        super().__init__(
            sprite, expected, actual, f"Too few indexes for [{sprite}]: {actual} of {expected}"
        )


class IndexListTooLongError(IndexListError):
    def __init__(self, sprite: str, expected: int, actual: int) -> None:
        super().__init__(
            sprite, expected, actual, f"Too many indexes for [{sprite}]: {actual}, expected {expected}"
        )


class BadCellIndexError(AtlasReconError):
    """Cell index does not address a cell of the atlas grid."""

    def __init__(self, sprite: str, cell: int, grid_size: int) -> None:
        self.sprite = sprite
        self.cell = cell
        self.grid_size = grid_size
        super().__init__(f"Bad cell index [{cell}] for [{sprite}] (grid has {grid_size} cells)")


class CropError(AtlasReconError):
    """Crop policy is unknown or could not be applied."""

    def __init__(self, policy: str, reason: str) -> None:
        self.policy = policy
        super().__init__(f"Crop failed [{policy}]: {reason}")


class UnsupportedFormatError(AtlasReconError):
    """Requested output format cannot be written by the image codec."""

    def __init__(self, fmt: str) -> None:
        self.format = fmt
        super().__init__(f"Unsupported format [{fmt}]")


class ExportError(AtlasReconError):
    """Encoded sprite could not be written to disk."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot write [{path}]: {reason}")


class BadDirectoryError(AtlasReconError):
    """Export target directory is missing or not writable."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = path
        super().__init__(f"Bad output directory [{path}]")

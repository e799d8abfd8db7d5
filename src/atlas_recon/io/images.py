"""Raster decoding and the encode/export gateway."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image, PngImagePlugin, UnidentifiedImageError

from atlas_recon.data import Canvas, Raster
from atlas_recon.errors import AtlasIOError, DecodeError, ExportError, UnsupportedFormatError

logger = logging.getLogger(__name__)

# Pillow writers that cannot store an alpha channel.
_OPAQUE_FORMATS = {"JPEG"}
_METADATA_PREFIX = "sprite:"


def load_raster(path: Union[str, Path]) -> Raster:
    """Decode an atlas file into a read-only RGBA array."""

    raster_path = Path(path)
    try:
        with Image.open(raster_path) as image:
            rgba = image.convert("RGBA")
    except (FileNotFoundError, IsADirectoryError, PermissionError) as exc:
        raise AtlasIOError(raster_path, exc.strerror or str(exc)) from exc
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(raster_path, str(exc)) from exc
    except (OSError, SyntaxError, ValueError) as exc:
        # Pillow reports truncated or corrupt data as OSError/SyntaxError
        if raster_path.is_file():
            raise DecodeError(raster_path, str(exc)) from exc
        raise AtlasIOError(raster_path, str(exc)) from exc

    data = np.array(rgba, dtype=np.uint8)
    data.setflags(write=False)
    logger.info("Decoded atlas %s (%dx%d)", raster_path, data.shape[1], data.shape[0])
    return data


def resolve_format(fmt: str) -> Tuple[str, str]:
    """Map a user format string (``png``, ``jpg``, ``webp``...) to a Pillow writer.

    Returns the Pillow format name and the lower-case file extension.
    """

    if not fmt:
        raise UnsupportedFormatError(str(fmt))
    extension = fmt.lower().lstrip(".")
    Image.init()
    pillow_format = Image.registered_extensions().get(f".{extension}")
    if pillow_format is None and extension.upper() in Image.ID:
        pillow_format = extension.upper()
    if pillow_format is None or pillow_format not in Image.SAVE:
        raise UnsupportedFormatError(fmt)
    return pillow_format, extension


def mime_type_for(fmt: str) -> str:
    pillow_format, extension = resolve_format(fmt)
    return Image.MIME.get(pillow_format, f"image/{extension}")


def _to_pil(canvas: Canvas, pillow_format: str) -> Image.Image:
    image = Image.fromarray(np.ascontiguousarray(canvas.image))
    if pillow_format in _OPAQUE_FORMATS:
        return image.convert("RGB")
    return image


def encode_canvas(canvas: Canvas, fmt: str) -> bytes:
    """Encode a canvas into an image blob of the requested format."""

    pillow_format, _ = resolve_format(fmt)
    image = _to_pil(canvas, pillow_format)
    params = {}
    if pillow_format == "PNG" and canvas.metadata:
        info = PngImagePlugin.PngInfo()
        for key, value in canvas.metadata.items():
            info.add_text(f"{_METADATA_PREFIX}{key}", str(value))
        params["pnginfo"] = info

    buffer = io.BytesIO()
    try:
        image.save(buffer, format=pillow_format, **params)
    except (KeyError, OSError, ValueError) as exc:
        raise UnsupportedFormatError(fmt) from exc
    return buffer.getvalue()


def write_blob(data: bytes, path: Union[str, Path]) -> Path:
    """Write an encoded blob to ``path``."""

    target = Path(path)
    try:
        target.write_bytes(data)
    except OSError as exc:
        raise ExportError(target, str(exc)) from exc
    return target


def read_metadata(data: bytes) -> dict:
    """Return the sprite metadata embedded in an encoded PNG blob."""

    with Image.open(io.BytesIO(data)) as image:
        text = getattr(image, "text", {}) or {}
    return {
        key[len(_METADATA_PREFIX):]: value
        for key, value in text.items()
        if key.startswith(_METADATA_PREFIX)
    }

import json
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add src to sys.path so we can import atlas_recon
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

CELL = 8
PAD = 1
TRANSPARENT = 99


def cell_colors(index: int):
    """Inner and border colors painted into atlas cell ``index``."""
    shade = 20 * (index + 1)
    return (shade, 100, 50, 255), (shade, 200, 50, 255)


def build_atlas(columns: int, rows: int, cell: int = CELL, pad: int = PAD) -> np.ndarray:
    """Atlas whose cells are numbered bottom row first, left to right."""
    atlas = np.zeros((rows * cell, columns * cell, 4), dtype=np.uint8)
    index = 0
    for row in range(rows - 1, -1, -1):
        for col in range(columns):
            inner, border = cell_colors(index)
            y, x = row * cell, col * cell
            atlas[y : y + cell, x : x + cell] = border
            atlas[y + pad : y + cell - pad, x + pad : x + cell - pad] = inner
            index += 1
    return atlas


def save_atlas(path: Path, atlas: np.ndarray) -> Path:
    Image.fromarray(atlas).save(path)
    return path


def sample_manifest() -> dict:
    return {
        "cellSize": CELL,
        "padding": PAD,
        "textureDataList": [
            {
                "name": "hero",
                "atlasName": "chars",
                "width": 10,
                "height": 5,
                "transparentIndex": TRANSPARENT,
                "cellIndexList": [0, 1],
            },
            {
                "name": "ghost",
                "atlasName": "chars",
                "width": 6,
                "height": 12,
                "transparentIndex": TRANSPARENT,
                "cellIndexList": [TRANSPARENT, 4],
            },
            {
                "name": "crate",
                "atlasName": "props",
                "width": 4,
                "height": 4,
                "transparentIndex": -1,
                "cellIndexList": [0],
            },
        ],
    }


def write_manifest(directory: Path, data: dict, name: str = "sprites.json") -> Path:
    path = directory / name
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def atlas_dir(tmp_path: Path) -> Path:
    """Directory holding a manifest and the two atlases it references."""
    save_atlas(tmp_path / "chars.png", build_atlas(columns=3, rows=2))
    save_atlas(tmp_path / "props.png", build_atlas(columns=1, rows=1))
    write_manifest(tmp_path, sample_manifest())
    return tmp_path


@pytest.fixture
def manifest_path(atlas_dir: Path) -> Path:
    return atlas_dir / "sprites.json"


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out

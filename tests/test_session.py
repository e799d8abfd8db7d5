"""
Tests for atlas_recon.session

Test Coverage:
- Lookups: list_sprite_names(), sprite_by_name(), sprite_by_index(), len()
- compose(): encoded output, headers data, idempotence, errors before I/O
- Caching: shared atlases decode and slice once, release on close
- canonical_image() / canonical_images(), MIME override
- Mutator hook applied once before encoding
- export_all(): directory checks, collect-and-report, fail-fast, workers
- stats(): per-sprite size report
"""

import io
import os

import numpy as np
import pytest
from PIL import Image

from atlas_recon.cache import RasterCache
from atlas_recon.data import Canvas, CropPolicy
from atlas_recon.errors import (
    AtlasIOError,
    BadDirectoryError,
    NotFoundError,
    UnsupportedFormatError,
)
from atlas_recon.io import load_raster, read_metadata
from atlas_recon.manifest import parse_manifest
from atlas_recon.session import ReconstructionSession
from conftest import sample_manifest, write_manifest


class CountingLoader:
    def __init__(self):
        self.calls = []

    def __call__(self, path):
        self.calls.append(path)
        return load_raster(path)


@pytest.fixture
def loader():
    return CountingLoader()


@pytest.fixture
def session(manifest_path, loader):
    with ReconstructionSession(manifest_path, cache=RasterCache(loader=loader)) as session:
        yield session


def _decode(data):
    with Image.open(io.BytesIO(data)) as image:
        return np.array(image.convert("RGBA"))


def test_lookups(session):
    assert session.list_sprite_names() == ["hero", "ghost", "crate"]
    assert len(session) == 3
    assert session.sprite_count == 3
    assert session.sprite_by_index(1).descriptor.name == "ghost"
    assert session.sprite_by_name("crate").index == 2


def test_source_dir_defaults_to_manifest_directory(session, atlas_dir):
    descriptor = session.sprite_by_name("hero").descriptor

    assert session.source_dir == atlas_dir
    assert session.atlas_path(descriptor) == atlas_dir / "chars.png"


def test_compose_returns_encoded_sprite(session):
    encoded = session.compose("hero", crop="full", fmt="png")

    assert encoded.name == "hero"
    assert (encoded.width, encoded.height) == (10, 5)
    assert encoded.crop is CropPolicy.FULL
    assert encoded.mime_type == "image/png"
    assert encoded.filename == "hero.png"
    assert encoded.length == len(encoded.data)
    assert _decode(encoded.data).shape == (5, 10, 4)
    assert read_metadata(encoded.data) == {"width": "10", "height": "5", "crop": "full"}


def test_compose_uses_session_defaults(manifest_path):
    with ReconstructionSession(manifest_path, crop="none") as session:
        encoded = session.compose("hero")

    assert encoded.crop is CropPolicy.NONE
    assert _decode(encoded.data).shape == (8, 14, 4)


def test_compose_is_idempotent(session):
    first = session.compose("ghost", crop="default", fmt="png")
    second = session.compose("ghost", crop="default", fmt="png")

    assert first.data == second.data


def test_unknown_name_performs_no_io(session, loader):
    with pytest.raises(NotFoundError):
        session.compose("missing")

    assert loader.calls == []
    assert len(session.cache) == 0


def test_unsupported_format_performs_no_io(session, loader):
    with pytest.raises(UnsupportedFormatError):
        session.compose("hero", fmt="nope")

    assert loader.calls == []


def test_unsupported_default_format_rejected(manifest_path):
    with pytest.raises(UnsupportedFormatError):
        ReconstructionSession(manifest_path, fmt="nope")


def test_shared_atlas_decoded_and_sliced_once(session, loader, atlas_dir):
    session.compose("hero")
    session.compose("ghost")

    assert loader.calls == [atlas_dir / "chars.png"]
    assert session.cache.decode_count == 1
    assert session.cache.slice_count == 1


def test_close_releases_cache(manifest_path, loader):
    cache = RasterCache(loader=loader)
    with ReconstructionSession(manifest_path, cache=cache) as session:
        session.compose("hero")
        session.compose("crate")
        assert len(cache) == 2

    assert len(cache) == 0


def test_canonical_image_returns_canvas(session):
    canvas = session.canonical_image("hero", crop=CropPolicy.DEFAULT)

    assert isinstance(canvas, Canvas)
    assert canvas.size == (12, 6)


def test_compose_mime_type_override(session):
    encoded = session.compose("hero", mime_type="application/x-sprite")

    assert encoded.mime_type == "application/x-sprite"
    assert encoded.filename == "hero.png"


def test_canonical_images_in_manifest_order(session):
    images = dict(session.canonical_images(crop="full"))

    assert list(images) == ["hero", "ghost", "crate"]
    assert images["hero"].size == (10, 5)
    assert images["ghost"].size == (6, 12)
    assert images["crate"].size == (4, 4)
    assert session.cache.decode_count == 2


def test_mutator_applied_once_before_encoding(manifest_path):
    seen = []

    def flip(canvas):
        seen.append(canvas.size)
        return Canvas(image=canvas.image[:, ::-1].copy(), metadata=dict(canvas.metadata))

    with ReconstructionSession(manifest_path, mutator=flip) as session:
        plain = session.canonical_image("hero", crop="full")
        encoded = session.compose("hero", crop="full")

    assert seen == [(10, 5)]
    assert np.array_equal(_decode(encoded.data), plain.image[:, ::-1])


def test_prefetch_touches_each_atlas_once(session, loader):
    assert session.prefetch() == 2
    assert len(loader.calls) == 2
    assert session.prefetch(["hero", "ghost"]) == 1
    assert len(loader.calls) == 2


def test_stats(session):
    stats = {item.name: item for item in session.stats()}

    assert stats["hero"].none == "14x8"
    assert stats["hero"].default == "12x6"
    assert stats["hero"].full == "10x5"
    assert stats["hero"].delta == "2x1"
    assert session.stats_for("ghost").default == "6x12"


def test_export_all_writes_every_sprite(session, output_dir):
    report = session.export_all(output_dir, fmt="png", crop="full")

    assert report.ok
    assert sorted(path.name for path in report.written) == ["crate.png", "ghost.png", "hero.png"]
    with Image.open(output_dir / "ghost.png") as image:
        assert image.size == (6, 12)


def test_export_all_with_workers_matches_sequential(manifest_path, tmp_path):
    sequential_dir = tmp_path / "seq"
    parallel_dir = tmp_path / "par"
    sequential_dir.mkdir()
    parallel_dir.mkdir()

    with ReconstructionSession(manifest_path) as session:
        session.export_all(sequential_dir)
    with ReconstructionSession(manifest_path) as session:
        report = session.export_all(parallel_dir, workers=3)
        assert session.cache.decode_count == 2

    assert report.ok
    for name in ("hero.png", "ghost.png", "crate.png"):
        assert (sequential_dir / name).read_bytes() == (parallel_dir / name).read_bytes()


def test_export_all_missing_directory(session, tmp_path):
    with pytest.raises(BadDirectoryError):
        session.export_all(tmp_path / "does-not-exist")


def test_export_all_target_is_a_file(session, tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")

    with pytest.raises(BadDirectoryError):
        session.export_all(target)


@pytest.fixture
def broken_manifest(atlas_dir):
    data = sample_manifest()
    data["textureDataList"].append(
        {
            "name": "lost",
            "atlasName": "missing",
            "width": 4,
            "height": 4,
            "transparentIndex": -1,
            "cellIndexList": [0],
        }
    )
    os.remove(atlas_dir / "sprites.json")
    return write_manifest(atlas_dir, data)


def test_export_all_collects_failures(broken_manifest, output_dir):
    with ReconstructionSession(broken_manifest) as session:
        report = session.export_all(output_dir)

    assert not report.ok
    assert len(report.written) == 3
    assert [name for name, _ in report.failures] == ["lost"]
    assert "missing.png" in report.failures[0][1]


def test_export_all_collects_failures_with_workers(broken_manifest, output_dir):
    with ReconstructionSession(broken_manifest) as session:
        report = session.export_all(output_dir, workers=2)

    assert len(report.written) == 3
    assert [name for name, _ in report.failures] == ["lost"]


def test_export_all_collects_oversized_atlas(manifest_path, output_dir, monkeypatch):
    # the 24x16 chars atlas exceeds twice the limit, the 8x8 props atlas does not
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    with ReconstructionSession(manifest_path) as session:
        report = session.export_all(output_dir)

    assert [path.name for path in report.written] == ["crate.png"]
    assert sorted(name for name, _ in report.failures) == ["ghost", "hero"]
    assert all("Cannot decode atlas" in message for _, message in report.failures)


def test_export_all_fail_fast(broken_manifest, output_dir):
    with ReconstructionSession(broken_manifest) as session:
        with pytest.raises(AtlasIOError):
            session.export_all(output_dir, fail_fast=True)


def test_manifest_object_without_path(atlas_dir):
    manifest = parse_manifest(sample_manifest())

    with ReconstructionSession(manifest, source_dir=atlas_dir) as session:
        assert session.compose("crate").width == 4

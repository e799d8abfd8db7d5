"""Reconstruction session: the API drivers and responders talk to."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

from atlas_recon.cache import RasterCache
from atlas_recon.compositor import compose as compose_canvas
from atlas_recon.compositor import stats_for as compositor_stats
from atlas_recon.data import (
    AtlasManifest,
    Canvas,
    CropPolicy,
    EncodedSprite,
    ExportReport,
    Grid,
    SpriteDescriptor,
    SpriteLookup,
    SpriteStats,
)
from atlas_recon.diagnostics import Timer
from atlas_recon.errors import AtlasReconError, BadDirectoryError
from atlas_recon.io import encode_canvas, mime_type_for, resolve_format, write_blob
from atlas_recon.manifest import load_manifest, sprite_by_index, sprite_by_name

logger = logging.getLogger(__name__)

Mutator = Callable[[Canvas], Canvas]


class ReconstructionSession:
    """Rebuilds named sprites from one manifest and its atlas files.

    Decoded atlases and their grids stay cached until ``release_all`` (or the
    end of a ``with`` block). Composed canvases are never cached.

    The optional ``mutator`` is applied once to every composed canvas before
    encoding (watermarks and similar effects). It may change the canvas
    size; that is the caller's business.
    """

    def __init__(
        self,
        manifest: Union[str, Path, AtlasManifest],
        source_dir: Optional[Union[str, Path]] = None,
        crop: Union[CropPolicy, str] = CropPolicy.DEFAULT,
        fmt: str = "png",
        mutator: Optional[Mutator] = None,
        cache: Optional[RasterCache] = None,
        atlas_extension: str = ".png",
    ) -> None:
        if isinstance(manifest, AtlasManifest):
            self.manifest = manifest
        else:
            self.manifest = load_manifest(manifest)
        if source_dir is not None:
            self.source_dir = Path(source_dir)
        elif self.manifest.path is not None:
            self.source_dir = self.manifest.path.parent
        else:
            self.source_dir = Path.cwd()
        if not self.source_dir.is_dir():
            logger.warning("Atlas source directory %s does not exist", self.source_dir)
        self.crop = CropPolicy.parse(crop)
        resolve_format(fmt)
        self.format = fmt.lower()
        self.mutator = mutator
        self.cache = cache if cache is not None else RasterCache()
        self.atlas_extension = atlas_extension

    def __enter__(self) -> "ReconstructionSession":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        self.release_all()

    def release_all(self) -> None:
        """Release every cached raster and grid."""

        self.cache.release_all()

    # Lookups

    def __len__(self) -> int:
        return len(self.manifest.sprites)

    @property
    def sprite_count(self) -> int:
        return len(self.manifest.sprites)

    def list_sprite_names(self) -> List[str]:
        return self.manifest.names()

    def sprite_by_name(self, name: str) -> SpriteLookup:
        return sprite_by_name(self.manifest, name)

    def sprite_by_index(self, index: int) -> SpriteLookup:
        return sprite_by_index(self.manifest, index)

    # Composition

    def atlas_path(self, descriptor: SpriteDescriptor) -> Path:
        return self.source_dir / f"{descriptor.atlas_name}{self.atlas_extension}"

    def grid_for(self, descriptor: SpriteDescriptor) -> Grid:
        return self.cache.grid(self.atlas_path(descriptor), self.manifest.cell_size)

    def build_canvas(
        self, descriptor: SpriteDescriptor, crop: Optional[Union[CropPolicy, str]] = None
    ) -> Canvas:
        policy = self.crop if crop is None else CropPolicy.parse(crop)
        return compose_canvas(
            descriptor,
            self.grid_for(descriptor),
            self.manifest.cell_size,
            self.manifest.padding,
            policy,
        )

    def canonical_image(self, name: str, crop: Optional[Union[CropPolicy, str]] = None) -> Canvas:
        """Compose the named sprite. The name is resolved before any atlas I/O."""

        descriptor = self.sprite_by_name(name).descriptor
        return self.build_canvas(descriptor, crop)

    def canonical_images(
        self, crop: Optional[Union[CropPolicy, str]] = None
    ) -> Iterator[Tuple[str, Canvas]]:
        """Yield ``(name, canvas)`` for every sprite in manifest order."""

        policy = self.crop if crop is None else CropPolicy.parse(crop)
        for descriptor in self.manifest.sprites:
            yield descriptor.name, self.build_canvas(descriptor, policy)

    def _encode(
        self,
        descriptor: SpriteDescriptor,
        policy: CropPolicy,
        fmt: str,
        mime_type: Optional[str] = None,
    ) -> EncodedSprite:
        _, extension = resolve_format(fmt)
        canvas = self.build_canvas(descriptor, policy)
        if self.mutator is not None:
            canvas = self.mutator(canvas)
        data = encode_canvas(canvas, fmt)
        return EncodedSprite(
            name=descriptor.name,
            data=data,
            width=descriptor.width,
            height=descriptor.height,
            crop=policy,
            format=fmt.lower(),
            extension=extension,
            mime_type=mime_type or mime_type_for(fmt),
        )

    def compose(
        self,
        name: str,
        crop: Optional[Union[CropPolicy, str]] = None,
        fmt: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> EncodedSprite:
        """Compose and encode one sprite.

        ``mime_type`` overrides the content type derived from the format.
        Raises ``NotFoundError`` for unknown names and
        ``UnsupportedFormatError`` for formats the codec cannot write, both
        before touching any atlas.
        """

        descriptor = self.sprite_by_name(name).descriptor
        fmt = fmt or self.format
        resolve_format(fmt)
        policy = self.crop if crop is None else CropPolicy.parse(crop)
        return self._encode(descriptor, policy, fmt, mime_type)

    # Stats

    def stats_for(self, name: str) -> SpriteStats:
        descriptor = self.sprite_by_name(name).descriptor
        return compositor_stats(descriptor, self.manifest.cell_size, self.manifest.padding)

    def stats(self) -> List[SpriteStats]:
        return [
            compositor_stats(descriptor, self.manifest.cell_size, self.manifest.padding)
            for descriptor in self.manifest.sprites
        ]

    # Batch

    def prefetch(self, names: Optional[Iterable[str]] = None) -> int:
        """Decode and slice every atlas referenced by ``names`` (default: all).

        Returns the number of distinct atlases touched.
        """

        if names is None:
            descriptors = list(self.manifest.sprites)
        else:
            descriptors = [self.sprite_by_name(name).descriptor for name in names]
        seen = set()
        for descriptor in descriptors:
            path = self.atlas_path(descriptor)
            if path in seen:
                continue
            seen.add(path)
            self.cache.grid(path, self.manifest.cell_size)
        return len(seen)

    def _export_one(
        self, descriptor: SpriteDescriptor, output_dir: Path, policy: CropPolicy, fmt: str
    ) -> Path:
        encoded = self._encode(descriptor, policy, fmt)
        target = write_blob(encoded.data, output_dir / encoded.filename)
        logger.debug("Wrote %s (%d bytes)", target, encoded.length)
        return target

    def export_all(
        self,
        output_dir: Union[str, Path],
        fmt: Optional[str] = None,
        crop: Optional[Union[CropPolicy, str]] = None,
        workers: int = 1,
        fail_fast: bool = False,
    ) -> ExportReport:
        """Write every sprite to ``output_dir`` as ``{name}.{ext}``.

        Per-sprite failures are collected in the returned report; with
        ``fail_fast`` the first one is raised instead.
        """

        target_dir = Path(output_dir)
        if not target_dir.is_dir() or not os.access(target_dir, os.W_OK):
            raise BadDirectoryError(target_dir)
        fmt = fmt or self.format
        resolve_format(fmt)
        policy = self.crop if crop is None else CropPolicy.parse(crop)

        report = ExportReport(output_dir=target_dir)
        descriptors = list(self.manifest.sprites)
        with Timer() as timer:
            if workers > 1 and len(descriptors) > 1:
                # grids must exist before fan-out; workers only read them
                try:
                    self.prefetch()
                except AtlasReconError as exc:
                    if fail_fast:
                        raise
                    logger.warning("Prefetch failed, continuing per sprite: %s", exc)
                results = self._export_parallel(descriptors, target_dir, policy, fmt, workers, fail_fast)
            else:
                results = self._export_sequential(descriptors, target_dir, policy, fmt, fail_fast)
        for name, outcome in results:
            if isinstance(outcome, Path):
                report.written.append(outcome)
            else:
                logger.warning("Export of [%s] failed: %s", name, outcome)
                report.failures.append((name, outcome))
        report.elapsed_s = timer.elapsed
        logger.info(
            "Exported %d of %d sprites to %s in %.2fs",
            len(report.written),
            len(descriptors),
            target_dir,
            report.elapsed_s,
        )
        return report

    def _export_sequential(
        self,
        descriptors: List[SpriteDescriptor],
        output_dir: Path,
        policy: CropPolicy,
        fmt: str,
        fail_fast: bool,
    ) -> List[Tuple[str, Union[Path, str]]]:
        results: List[Tuple[str, Union[Path, str]]] = []
        for descriptor in descriptors:
            try:
                results.append((descriptor.name, self._export_one(descriptor, output_dir, policy, fmt)))
            except AtlasReconError as exc:
                if fail_fast:
                    raise
                results.append((descriptor.name, str(exc)))
        return results

    def _export_parallel(
        self,
        descriptors: List[SpriteDescriptor],
        output_dir: Path,
        policy: CropPolicy,
        fmt: str,
        workers: int,
        fail_fast: bool,
    ) -> List[Tuple[str, Union[Path, str]]]:
        results: List[Tuple[str, Union[Path, str]]] = []
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                (descriptor.name, pool.submit(self._export_one, descriptor, output_dir, policy, fmt))
                for descriptor in descriptors
            ]
            for name, future in futures:
                try:
                    results.append((name, future.result()))
                except AtlasReconError as exc:
                    if fail_fast:
                        for _, pending in futures:
                            pending.cancel()
                        raise
                    results.append((name, str(exc)))
        return results

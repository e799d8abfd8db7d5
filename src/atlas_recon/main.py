"""Command line driver for atlas sprite reconstruction."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from atlas_recon.config import Config, load_config
from atlas_recon.data import CropPolicy
from atlas_recon.diagnostics import format_stats_table, write_stats_report
from atlas_recon.errors import AtlasReconError, BadDirectoryError
from atlas_recon.io import write_blob
from atlas_recon.session import ReconstructionSession


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild sprites from a packed texture atlas")
    parser.add_argument("--manifest", type=Path, required=True, help="Path to the atlas manifest JSON")
    parser.add_argument("--output-dir", type=Path, help="Directory to export sprites into (must exist)")
    parser.add_argument("--source-dir", type=Path, help="Directory holding the atlas images")
    parser.add_argument("--config", type=Path, help="Optional JSON config path")
    parser.add_argument(
        "--crop",
        type=str,
        choices=[policy.value for policy in CropPolicy],
        help="Crop policy",
    )
    parser.add_argument("--format", dest="output_format", type=str, help="Output image format")
    parser.add_argument("--name", type=str, help="Export a single sprite by name")
    parser.add_argument("--workers", type=int, help="Parallel export workers")
    parser.add_argument("--fail-fast", action="store_true", help="Abort on the first failed sprite")
    parser.add_argument("--stats", action="store_true", help="Print per-sprite size stats")
    parser.add_argument("--stats-output", type=Path, help="Write size stats to JSON/CSV")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    overrides = {}
    if args.source_dir:
        overrides["source_dir"] = args.source_dir
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    if args.crop:
        overrides["crop"] = CropPolicy.parse(args.crop)
    if args.output_format:
        overrides["output_format"] = args.output_format.lower()
    if args.workers is not None:
        if args.workers < 1:
            raise ValueError("--workers must be at least 1.")
        overrides["workers"] = args.workers
    if args.fail_fast:
        overrides["fail_fast"] = True
    if args.stats_output:
        overrides["stats_output"] = args.stats_output
    return dataclasses.replace(config, **overrides) if overrides else config


def run(args: argparse.Namespace) -> int:
    config = _apply_overrides(load_config(args.config), args)
    with ReconstructionSession(
        args.manifest,
        source_dir=config.source_dir,
        crop=config.crop,
        fmt=config.output_format,
        atlas_extension=config.atlas_extension,
    ) as session:
        print(f"Manifest: {args.manifest} ({session.sprite_count} sprites)")

        if args.stats:
            print(format_stats_table(session.stats()))
        if config.stats_output:
            write_stats_report(session.stats(), config.stats_output)
            print(f"Stats written to {config.stats_output}")

        if args.name:
            if not config.output_dir:
                raise ValueError("--output-dir is required with --name.")
            if not config.output_dir.is_dir():
                raise BadDirectoryError(config.output_dir)
            encoded = session.compose(args.name)
            target = write_blob(encoded.data, config.output_dir / encoded.filename)
            print(f"Wrote {target} ({encoded.width}x{encoded.height}, crop {encoded.crop.value})")
            return 0

        if not config.output_dir:
            return 0

        report = session.export_all(
            config.output_dir,
            workers=config.workers,
            fail_fast=config.fail_fast,
        )
        print(f"Exported {len(report.written)} of {session.sprite_count} sprites in {report.elapsed_s:.2f}s")
        for name, message in report.failures:
            print(f"  FAILED {name}: {message}")
        return 0 if report.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except (AtlasReconError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

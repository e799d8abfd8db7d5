"""Configuration schema and loading utilities."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from atlas_recon.data import CropPolicy


@dataclass(frozen=True)
class Config:
    """Top-level settings for a reconstruction session."""

    source_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    atlas_extension: str = ".png"
    output_format: str = "png"
    crop: CropPolicy = CropPolicy.DEFAULT
    workers: int = 1
    fail_fast: bool = False
    stats_output: Optional[Path] = None


_DEFAULTS: Dict[str, Any] = {
    "source_dir": None,
    "output_dir": None,
    "atlas_extension": ".png",
    "output_format": "png",
    "crop": CropPolicy.DEFAULT.value,
    "workers": 1,
    "fail_fast": False,
    "stats_output": None,
}


def _optional_path(value: Any) -> Optional[Path]:
    return Path(value).expanduser() if value else None


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from JSON and apply defaults."""

    if path:
        try:
            raw = json.loads(Path(path).read_text())
        except OSError as exc:
            raise ValueError(f"Cannot read config file {path}: {exc.strerror or exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a JSON object.")
        unknown = sorted(set(raw) - set(_DEFAULTS))
        if unknown:
            raise ValueError(f"Unknown config key(s): {', '.join(unknown)}")
        merged = {**_DEFAULTS, **raw}
    else:
        merged = dict(_DEFAULTS)

    workers = int(merged["workers"])
    if workers < 1:
        raise ValueError("workers must be at least 1.")
    extension = str(merged["atlas_extension"])
    if not extension.startswith("."):
        extension = f".{extension}"

    return Config(
        source_dir=_optional_path(merged["source_dir"]),
        output_dir=_optional_path(merged["output_dir"]),
        atlas_extension=extension,
        output_format=str(merged["output_format"]).lower(),
        crop=CropPolicy.parse(merged["crop"]),
        workers=workers,
        fail_fast=bool(merged["fail_fast"]),
        stats_output=_optional_path(merged["stats_output"]),
    )

"""Size statistics reporting and export timing."""

from __future__ import annotations

import csv
import json
import time
from pathlib import Path
from typing import List, Sequence

from atlas_recon.data import SpriteStats

_COLUMNS = ["name", "none", "default", "full", "delta"]


def write_stats_report(stats: Sequence[SpriteStats], path: Path) -> Path:
    """Write per-sprite size stats as JSON, or CSV when the suffix is ``.csv``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    rows = [item.as_dict() for item in stats]
    if path.suffix.lower() == ".csv":
        with path.open("w", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=_COLUMNS)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
    else:
        path.write_text(json.dumps(rows, indent=2))
    return path


def format_stats_table(stats: Sequence[SpriteStats]) -> str:
    """Render stats as an aligned plain-text table."""

    rows: List[List[str]] = [_COLUMNS] + [
        [item.name, item.none, item.default, item.full, item.delta] for item in stats
    ]
    widths = [max(len(row[col]) for row in rows) for col in range(len(_COLUMNS))]
    lines = ["  ".join(cell.ljust(widths[col]) for col, cell in enumerate(row)).rstrip() for row in rows]
    return "\n".join(lines)


class Timer:
    """Simple context timer for profiling blocks."""

    def __init__(self) -> None:
        self.start = 0.0
        self.elapsed = 0.0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.elapsed = time.perf_counter() - self.start

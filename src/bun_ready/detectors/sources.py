"""Source file discovery shared by the source-level detectors."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger("bun_ready.detectors.sources")

SOURCE_EXTENSIONS = {".ts", ".js", ".tsx", ".jsx", ".mts", ".mjs", ".cts", ".cjs"}

SKIP_DIRS = {"node_modules", "dist", "build", "out", "coverage"}


def find_source_files(root: Path) -> list[Path]:
    """Source files under ``root`` in sorted order, skipping build and hidden dirs."""
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.suffix in SOURCE_EXTENSIONS:
                files.append(path)
    return files


def read_source(path: Path) -> str | None:
    """File text, or None when it cannot be read."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("Skipping unreadable file %s: %s", path, e)
        return None


def _log_walk_error(error: OSError) -> None:
    logger.debug("Skipping unreadable directory: %s", error)

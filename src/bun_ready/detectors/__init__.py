"""Detector registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bun_ready.detectors.heuristics import (
    LockfileDetector,
    NativeAddonDetector,
    ScriptDetector,
)
from bun_ready.detectors.module_system import ModuleSystemDetector
from bun_ready.detectors.node_api import NodeApiDetector

if TYPE_CHECKING:
    from bun_ready.detectors.base import Detector, DetectorContext
    from bun_ready.models import Finding

logger = logging.getLogger("bun_ready.detectors")

DETECTOR_CLASSES: dict[str, type] = {
    "lockfile": LockfileDetector,
    "scripts": ScriptDetector,
    "native": NativeAddonDetector,
    "api": NodeApiDetector,
    "modules": ModuleSystemDetector,
}


def get_detector(name: str) -> Detector:
    cls = DETECTOR_CLASSES[name]
    return cls()


def run_detectors(ctx: DetectorContext, names: list[str] | None = None) -> list[Finding]:
    """Run detectors in registry order; a failing detector is skipped."""
    findings: list[Finding] = []
    for name in names or list(DETECTOR_CLASSES):
        detector = get_detector(name)
        try:
            findings.extend(detector.detect(ctx))
        except Exception:
            logger.warning("Detector %s failed on %s", name, ctx.root, exc_info=True)
    return findings

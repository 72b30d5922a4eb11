"""Detector protocol and the context every detector receives."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from bun_ready.models import Finding, RepoInfo


@dataclass
class DetectorContext:
    root: Path
    repo: RepoInfo
    native_addon_allowlist: list[str] = field(default_factory=list)


@runtime_checkable
class Detector(Protocol):
    name: str

    def detect(self, ctx: DetectorContext) -> list[Finding]:
        """Inspect one package and return findings."""
        ...

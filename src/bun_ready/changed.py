"""Restrict a scan to workspace packages touched since a git ref."""

from __future__ import annotations

import logging
from pathlib import Path

from bun_ready.runner import run_command
from bun_ready.workspaces import WorkspacePackage

logger = logging.getLogger("bun_ready.changed")

GIT_TIMEOUT = 60.0


async def git_changed_paths(repo: Path, since: str) -> list[Path]:
    """Absolute paths from ``git diff --name-only <since>``; empty on any git error."""
    if since.startswith("-"):
        logger.warning("Refusing git ref that looks like an option: %s", since)
        return []
    try:
        res = await run_command(
            ["git", "diff", "--name-only", since, "--"], repo, GIT_TIMEOUT
        )
    except OSError as e:
        logger.warning("git is not available: %s", e)
        return []
    if res.returncode != 0:
        logger.warning("git diff against %s failed: %s", since, res.stderr.strip())
        return []

    top = await _git_toplevel(repo)
    return [(top / line.strip()).resolve() for line in res.stdout.splitlines() if line.strip()]


async def _git_toplevel(repo: Path) -> Path:
    res = await run_command(["git", "rev-parse", "--show-toplevel"], repo, GIT_TIMEOUT)
    if res.returncode == 0 and res.stdout.strip():
        return Path(res.stdout.strip())
    return repo


def filter_changed(
    packages: list[WorkspacePackage], changed: list[Path]
) -> list[WorkspacePackage]:
    """Packages whose directory contains at least one changed path."""
    return [
        pkg for pkg in packages
        if any(path.is_relative_to(pkg.path) for path in changed)
    ]

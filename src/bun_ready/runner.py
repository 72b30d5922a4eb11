"""Runs the ``bun`` binary for install dry-runs and test suites."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import tempfile
from dataclasses import dataclass
from pathlib import Path

from bun_ready.models import RepoInfo, StepResult, StepStatus

logger = logging.getLogger("bun_ready.runner")

DEFAULT_TIMEOUT = 300.0

INSTALL_INPUTS = (
    "package.json",
    "bun.lock",
    "bun.lockb",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
)

MAX_INSTALL_LOG_LINES = 60
MAX_TEST_LOG_LINES = 120


@dataclass
class CommandResult:
    returncode: int | None
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def lines(self) -> list[str]:
        combined = self.stdout.splitlines() + self.stderr.splitlines()
        return [ln for ln in combined if ln.strip()]


def is_bun_available() -> bool:
    return shutil.which("bun") is not None


def truncate_lines(lines: list[str], limit: int) -> list[str]:
    if len(lines) <= limit:
        return lines
    return [*lines[:limit], f"... ({len(lines) - limit} more lines)"]


async def run_command(
    args: list[str], cwd: Path, timeout: float = DEFAULT_TIMEOUT
) -> CommandResult:
    """Run ``args`` in ``cwd``, killing its process group after ``timeout`` seconds."""
    logger.debug("Running %s in %s", " ".join(args), cwd)
    proc = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        _kill_group(proc)
        await proc.wait()
        logger.warning("%s timed out after %.0fs", " ".join(args), timeout)
        return CommandResult(None, "", "", timed_out=True)
    return CommandResult(
        proc.returncode,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    # Children of bun would otherwise keep the pipes open.
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def _step_result(label: str, res: CommandResult, max_lines: int, timeout: float) -> StepResult:
    logs = truncate_lines(res.lines, max_lines)
    if res.timed_out:
        return StepResult(
            status=StepStatus.TIMED_OUT,
            summary=f"{label} timed out after {timeout:.0f}s",
            logs=logs,
        )
    if res.returncode == 0:
        return StepResult(status=StepStatus.OK, summary=f"{label} succeeded", logs=logs)
    return StepResult(
        status=StepStatus.FAILED,
        summary=f"{label} failed (exit {res.returncode})",
        logs=logs,
    )


async def run_install_dry_run(
    package_dir: Path, timeout: float = DEFAULT_TIMEOUT
) -> StepResult:
    """``bun install --dry-run`` against copies of the manifest and lockfiles.

    Runs in a temporary directory so the project itself is never touched.
    """
    with tempfile.TemporaryDirectory(prefix="bun-ready-") as tmp:
        base = Path(tmp)
        for name in INSTALL_INPUTS:
            src = package_dir / name
            if src.is_file():
                shutil.copyfile(src, base / name)
        res = await run_command(["bun", "install", "--dry-run"], base, timeout)
    return _step_result("bun install --dry-run", res, MAX_INSTALL_LOG_LINES, timeout)


def should_run_tests(repo: RepoInfo) -> bool:
    """Only run tests when the project already runs them with ``bun test``."""
    script = repo.scripts.get("test", "")
    return "bun test" in script.lower()


async def run_tests(package_dir: Path, timeout: float = DEFAULT_TIMEOUT) -> StepResult:
    res = await run_command(["bun", "test"], package_dir, timeout)
    return _step_result("bun test", res, MAX_TEST_LOG_LINES, timeout)

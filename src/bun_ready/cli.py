"""CLI entry point using Typer."""

from __future__ import annotations

import logging
import sys
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console

from bun_ready import __version__
from bun_ready.analysis.scan import ScanOptions, Scope, run_scan
from bun_ready.baseline import (
    BaselineStatus,
    build_baseline,
    calculate_baseline_metrics,
    fingerprints_for_result,
    read_baseline,
    save_baseline,
    update_baseline,
)
from bun_ready.ci import (
    ExitCode,
    format_ci_summary_text,
    format_github_job_summary,
    generate_ci_summary,
)
from bun_ready.config import BunReadyConfig, load_config
from bun_ready.logging import setup_logging
from bun_ready.models import BaselineData, ScanResult, Severity
from bun_ready.policy import merge_policy_configs, policy_from_cli
from bun_ready.runner import DEFAULT_TIMEOUT

logger = logging.getLogger("bun_ready.cli")

app = typer.Typer(
    name="bun-ready",
    help="Check how ready a Node.js project is to migrate to Bun.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


class ReportFormat(StrEnum):
    MD = "md"
    JSON = "json"
    SARIF = "sarif"


DEFAULT_OUTPUT = {
    ReportFormat.MD: "bun-ready.md",
    ReportFormat.JSON: "bun-ready.json",
    ReportFormat.SARIF: "bun-ready.sarif",
}


def version_callback(value: bool) -> None:
    if value:
        console.print(f"bun-ready {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """bun-ready: Bun migration readiness scanner."""


def _misuse(message: str) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(ExitCode.MISUSE)


def _failed(message: str) -> typer.Exit:
    err_console.print(f"[red]bun-ready failed:[/red] {message}", highlight=False)
    return typer.Exit(ExitCode.FAILED)


@app.command()
def scan(
    path: Annotated[
        Path, typer.Argument(help="Project root containing package.json")
    ] = Path("."),
    fmt: Annotated[
        ReportFormat, typer.Option("--format", "-f", help="Report format")
    ] = ReportFormat.MD,
    out: Annotated[
        Path | None, typer.Option("--out", "-o", help="Report file path")
    ] = None,
    no_install: Annotated[
        bool, typer.Option("--no-install", help="Skip the bun install dry-run")
    ] = False,
    no_test: Annotated[
        bool, typer.Option("--no-test", help="Skip bun test")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Debug logging")
    ] = False,
    log_json: Annotated[
        bool, typer.Option("--log-json", help="Write logs to stderr as JSON lines")
    ] = False,
    detailed: Annotated[
        bool, typer.Option("--detailed", help="Include dependency usage and full logs")
    ] = False,
    scope: Annotated[
        Scope, typer.Option("--scope", help="Scan the root, workspace packages, or both")
    ] = Scope.ALL,
    fail_on: Annotated[
        Severity | None,
        typer.Option("--fail-on", help="Lowest severity that fails the run"),
    ] = None,
    rule: Annotated[
        list[str] | None,
        typer.Option("--rule", help="Policy rule: id=action, id:change or id=action:change"),
    ] = None,
    max_warnings: Annotated[
        int | None, typer.Option("--max-warnings", min=0, help="Allowed yellow findings")
    ] = None,
    max_packages_red: Annotated[
        int | None, typer.Option("--max-packages-red", min=0, help="Allowed red packages")
    ] = None,
    max_packages_yellow: Annotated[
        int | None,
        typer.Option("--max-packages-yellow", min=0, help="Allowed yellow packages"),
    ] = None,
    baseline: Annotated[
        Path | None, typer.Option("--baseline", help="Baseline file to compare against")
    ] = None,
    update_baseline_file: Annotated[
        bool,
        typer.Option("--update-baseline", help="Write current findings to --baseline"),
    ] = False,
    changed_only: Annotated[
        bool, typer.Option("--changed-only", help="Only packages changed since --since")
    ] = False,
    since: Annotated[
        str | None, typer.Option("--since", help="Git ref for --changed-only")
    ] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file path")
    ] = None,
    timeout: Annotated[
        float, typer.Option("--timeout", min=1.0, help="Seconds per bun install/test run")
    ] = DEFAULT_TIMEOUT,
    ci: Annotated[
        bool, typer.Option("--ci", help="Print the CI summary")
    ] = False,
    github_summary: Annotated[
        Path | None,
        typer.Option("--github-summary", help="Append a Markdown CI summary to this file"),
    ] = None,
) -> None:
    """Scan a project and write a migration readiness report."""
    setup_logging(verbose, "json" if log_json else "text")

    root = path.resolve()
    if not root.is_dir():
        raise _misuse(f"{path} is not a directory")
    if changed_only and not since:
        raise _misuse("--changed-only requires --since <ref>")
    if since and not changed_only:
        raise _misuse("--since is only valid with --changed-only")
    if since and since.startswith("-"):
        raise _misuse(f"--since must be a git ref, not {since!r}")
    if update_baseline_file and baseline is None:
        raise _misuse("--update-baseline requires --baseline <file>")

    cfg = load_config(root, config) or BunReadyConfig()
    policy = merge_policy_configs(
        policy_from_cli(rule, max_warnings, max_packages_red, max_packages_yellow, fail_on),
        cfg.policy(),
    )

    baseline_data: BaselineData | None = None
    if baseline is not None:
        loaded = read_baseline(baseline)
        if loaded.status is BaselineStatus.NOT_FOUND and not update_baseline_file:
            raise _misuse(f"baseline {baseline} not found (use --update-baseline to create it)")
        if loaded.status is BaselineStatus.INVALID:
            logger.warning("Ignoring malformed baseline %s: %s", baseline, loaded.error)
        baseline_data = loaded.data

    detailed = detailed or cfg.detailed
    opts = ScanOptions(
        root=root,
        run_install=not no_install,
        run_test=not no_test,
        timeout=timeout,
        scope=scope,
        since=since if changed_only else None,
        detailed=detailed,
        policy=policy,
        config=cfg,
        baseline=baseline_data,
    )

    console.print(f"[bold]bun-ready[/bold] v{__version__}: scanning {root}")
    result = run_scan(opts)

    if update_baseline_file and baseline is not None:
        _write_baseline(result, baseline_data, baseline)

    _output_report(result, cfg, fmt, out, detailed)

    if ci:
        console.print(format_ci_summary_text(generate_ci_summary(result)), markup=False)
    if github_summary is not None:
        try:
            with github_summary.open("a", encoding="utf-8") as fh:
                fh.write(format_github_job_summary(generate_ci_summary(result)) + "\n")
        except OSError as e:
            raise _failed(f"cannot write {github_summary}: {e}") from e

    raise typer.Exit(result.exit_code)


def _write_baseline(result: ScanResult, existing: BaselineData | None, path: Path) -> None:
    if existing is None:
        data = build_baseline(result, scan_version=__version__)
    else:
        data = update_baseline(
            existing,
            fingerprints_for_result(result),
            metrics=calculate_baseline_metrics(result.all_findings, result.packages),
        )
    try:
        save_baseline(data, path)
    except OSError as e:
        raise _failed(f"cannot write baseline {path}: {e}") from e
    console.print(f"[green]Baseline saved to {path}[/green]")


def _output_report(
    result: ScanResult,
    cfg: BunReadyConfig,
    fmt: ReportFormat,
    out: Path | None,
    detailed: bool,
) -> None:
    if fmt is ReportFormat.JSON:
        from bun_ready.reporters.json_report import render_json

        text = render_json(result)
    elif fmt is ReportFormat.SARIF:
        from bun_ready.reporters.sarif import format_sarif

        text = format_sarif(result)
    else:
        from bun_ready.reporters.markdown import render_markdown

        text = render_markdown(result, cfg, detailed=detailed)

    from bun_ready.reporters.terminal import render_terminal

    render_terminal(result, console)

    target = (out or Path(DEFAULT_OUTPUT[fmt])).resolve()
    try:
        target.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        raise _failed(f"cannot write {target}: {e}") from e
    console.print(f"Wrote {fmt.value.upper()} report to {target}", highlight=False)


def main() -> None:
    """Console entry point; usage errors exit with 1, not click's 2."""
    try:
        code = app(standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(ExitCode.MISUSE)
    except click.Abort:
        err_console.print("Aborted.")
        sys.exit(ExitCode.FAILED)
    sys.exit(code or 0)

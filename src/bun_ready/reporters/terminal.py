"""Rich terminal reporter."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bun_ready.models import Finding, ScanResult, Severity

SEVERITY_COLORS = {
    Severity.RED: "bold red",
    Severity.YELLOW: "yellow",
    Severity.GREEN: "green",
}


def _severity_text(severity: Severity) -> str:
    color = SEVERITY_COLORS[severity]
    return f"[{color}]{severity.value.upper()}[/]"


def render_terminal(result: ScanResult, console: Console) -> None:
    """Render a scan verdict and its findings to the terminal."""
    console.print()

    s = result.summary
    summary_text = (
        f"Overall: {_severity_text(result.severity)}  "
        f"[red]Red: {s.red}[/]  "
        f"[yellow]Yellow: {s.yellow}[/]  "
        f"[green]Green: {s.green}[/]  "
        f"| Packages: {len(result.packages)}"
    )
    console.print(Panel(
        summary_text,
        title=f"[bold]bun-ready: {result.repo_path}[/]",
        subtitle=f"exit code {result.exit_code} | {result.timestamp:%Y-%m-%d %H:%M UTC}",
    ))

    if result.packages:
        packages = Table(show_header=True, header_style="bold", expand=True)
        packages.add_column("Package", ratio=2)
        packages.add_column("Status", width=8)
        packages.add_column("Findings", width=9, justify="right")
        for pkg in sorted(result.packages, key=lambda p: p.name):
            packages.add_row(pkg.name, _severity_text(pkg.severity), str(len(pkg.findings)))
        console.print(packages)

    rows: list[tuple[str, Finding]] = [("root", f) for f in result.findings]
    for pkg in result.packages:
        rows.extend((pkg.name, f) for f in pkg.findings)
    if not rows:
        console.print("\n[green]No findings.[/green]")
    else:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("Sev", width=8)
        table.add_column("Package", ratio=1)
        table.add_column("ID", ratio=2)
        table.add_column("Title", ratio=3)
        for package_name, f in sorted(rows, key=lambda r: (-r[1].severity.rank, r[0], r[1].id)):
            table.add_row(_severity_text(f.severity), package_name, f.id, f.title[:80])
        console.print(table)

    for reason in result.threshold_reasons:
        console.print(f"[yellow]Threshold:[/] {reason}")
    if result.baseline is not None:
        for reason in result.baseline.regression_reasons:
            console.print(f"[bold red]Regression:[/] {reason}")

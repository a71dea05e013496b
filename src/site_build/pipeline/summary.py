from __future__ import annotations

from rich.console import Console
from rich.table import Table

from site_build.core import format_bytes, format_duration_ms

from .report import BuildReport
from .task import TaskStatus

_STATUS_STYLE = {
    TaskStatus.COMPLETED: "green",
    TaskStatus.FAILED: "red",
    TaskStatus.SKIPPED: "yellow",
    TaskStatus.PENDING: "dim",
    TaskStatus.RUNNING: "dim",
}


def render_summary(report: BuildReport) -> Table:
    tbl = Table(title="Build summary", show_header=True, box=None)
    tbl.add_column("task")
    tbl.add_column("phase")
    tbl.add_column("status")
    tbl.add_column("duration", justify="right")
    tbl.add_column("detail")

    for t in report.tasks:
        style = _STATUS_STYLE[t.status]
        detail = ""
        if t.error is not None:
            detail = t.error.message
        elif t.skip_reason:
            detail = t.skip_reason
        tbl.add_row(
            t.name,
            t.phase.value,
            f"[{style}]{t.status.value}[/{style}]",
            format_duration_ms(t.duration_ms or 0),
            detail,
        )
    return tbl


def print_summary(report: BuildReport, console: Console | None = None) -> None:
    """
    Human-readable summary. Printed for every run, including fatal ones.
    """
    console = console or Console()
    console.print(render_summary(report))

    totals = Table(show_header=False, box=None)
    totals.add_row("total build time", format_duration_ms(report.wall_clock_ms))
    totals.add_row("total tasks", str(report.total_tasks))
    totals.add_row("completed", str(report.completed))
    totals.add_row("failed", str(report.failed))
    totals.add_row("skipped", str(report.skipped))
    if report.stats:
        totals.add_row("output size", format_bytes(int(report.stats.get("total_bytes", 0))))
        for name, d in report.stats.get("dirs", {}).items():
            totals.add_row(f"  {name}/", f"{d['files']} files, {format_bytes(int(d['bytes']))}")
    if report.report_json:
        totals.add_row("report", report.report_json)
    totals.add_row(
        "status",
        "[green]ok[/green]" if report.exit_code == 0 else "[red]failed[/red]",
    )
    console.print(totals)

    if report.errors:
        console.print("[bold red]Errors encountered:[/bold red]")
        for i, e in enumerate(report.errors, start=1):
            console.print(f"  {i}. [{e.task}] {e.message}", markup=False, highlight=False)

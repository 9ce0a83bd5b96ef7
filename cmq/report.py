"""Run report rendering: rich table for the console, CSV for CI artifacts."""

import csv
from pathlib import Path

from rich.table import Table

from cmq.models import ActionStatus, RunReport

_STATUS_STYLE = {
    ActionStatus.DONE: "green",
    ActionStatus.SKIPPED: "dim",
    ActionStatus.FAILED: "red",
    ActionStatus.DRY_RUN: "yellow",
}

CSV_HEADER = ["run_id", "step", "issue", "action", "status", "error"]


def report_table(report: RunReport) -> Table:
    table = Table(title=f"Run {report.run_id} ({report.mode.value} mode, {report.today.isoformat()})")
    table.add_column("Step", style="bold")
    table.add_column("Issue", style="cyan")
    table.add_column("Action")
    table.add_column("Status")
    table.add_column("Error", style="dim")

    for r in report.results:
        style = _STATUS_STYLE[r.status]
        table.add_row(r.step, r.issue_id, r.action, f"[{style}]{r.status.value}[/{style}]", r.error or "")

    return table


def write_report_csv(report: RunReport, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(CSV_HEADER)
        for r in report.results:
            writer.writerow([report.run_id, r.step, r.issue_id, r.action, r.status.value, r.error or ""])

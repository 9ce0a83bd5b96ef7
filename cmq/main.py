"""CMQ CLI: all commands."""

from datetime import date
from pathlib import Path
from typing import Annotated

import tomlkit
import typer
from rich import print as rprint
from rich.table import Table

from cmq.audit import AUDIT_LOG_NAME, AuditLog
from cmq.log import configure_logging
from cmq.mode import parse_calendar_date, select_mode
from cmq.models import Issue
from cmq.providers.base import IssueTracker, TrackerError
from cmq.providers.jira import JiraTracker
from cmq.providers.snapshot import SnapshotTracker
from cmq.queues import CANDIDATE_ORDER, QueueOverlapError, build_views, ensure_disjoint
from cmq.report import report_table, write_report_csv
from cmq.runner import run_pass
from cmq.settings import CONFIG_PATH, CmqSettings, _list_profiles, get_settings

app = typer.Typer(help="continuous-manage-queues: integration queue automation for Jira", no_args_is_help=True)

TrackerOpt = Annotated[
    str | None,
    typer.Option("--tracker", "-k", help="Profile name from ~/.config/cmq/config.toml"),
]
NowOpt = Annotated[
    str | None,
    typer.Option("--now", help="Evaluate as if today were YYYY-MM-DD (defaults to the wall clock)"),
]


@app.callback()
def main(
    log_format: Annotated[
        str,
        typer.Option("--log-format", envvar="CMQ_LOG_FORMAT", help="console or json"),
    ] = "console",
) -> None:
    configure_logging(log_format)


# ---------------------------------------------------------------------------
# Tracker factory
# ---------------------------------------------------------------------------


def get_provider(settings: CmqSettings) -> IssueTracker:
    match settings.provider:
        case "jira":
            return JiraTracker(settings)
        case "snapshot":
            try:
                return SnapshotTracker.from_file(settings.snapshot_path)  # type: ignore[arg-type]
            except TrackerError as exc:
                rprint(f"[red]{exc}[/red]")
                raise typer.Exit(1) from exc
        case _:
            rprint(f"[red]Unknown provider '{settings.provider}'. Valid: jira, snapshot[/red]")
            raise typer.Exit(1)


def _resolve_today(now: str | None) -> date:
    if now is None:
        return date.today()
    try:
        return parse_calendar_date(now)
    except ValueError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


def _queue_table(title: str, issues: list[Issue]) -> Table:
    table = Table(title=f"{title} ({len(issues)})")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Priority")
    table.add_column("Int. pri", justify="right")
    table.add_column("Votes", justify="right")
    table.add_column("Labels", style="dim")

    for issue in issues:
        rank = "—" if issue.integration_priority is None else str(issue.integration_priority)
        labels = ", ".join(sorted(issue.labels)) or "—"
        table.add_row(issue.id, issue.type, issue.priority.name.title(), rank, str(issue.votes), labels)

    return table


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("run")
def run_cmd(
    tracker: TrackerOpt = None,
    now: NowOpt = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Decide and report without touching the tracker")] = False,
    fail_fast: Annotated[bool, typer.Option("--fail-fast", help="Abort the run on the first failed mutation")] = False,
    report: Annotated[
        Path | None,
        typer.Option("--report", "-o", help="Also write the results as CSV"),
    ] = None,
) -> None:
    """Run one pass over the candidates and current queues."""
    settings = get_settings(tracker=tracker)
    today = _resolve_today(now)
    provider = get_provider(settings)
    audit = AuditLog(settings.workspace / AUDIT_LOG_NAME, run_id=settings.run_id)

    try:
        result = run_pass(provider, settings, audit, today=today, dry_run=dry_run, fail_fast=fail_fast)
    except (TrackerError, QueueOverlapError) as exc:
        rprint(f"[red]Run aborted:[/red] {exc}")
        rprint(f"[dim]Mutations applied so far are listed in {audit.path}[/dim]")
        raise typer.Exit(1) from exc

    rprint(report_table(result))
    if report:
        write_report_csv(result, report)
        rprint(f"[green]✓[/green] Wrote report to {report}")

    if result.failed:
        rprint(f"[red]{len(result.failed)} action(s) failed.[/red]")
        raise typer.Exit(1)
    if dry_run:
        rprint("[yellow](dry run: nothing was changed)[/yellow]")


@app.command("mode")
def mode_cmd(tracker: TrackerOpt = None, now: NowOpt = None) -> None:
    """Show whether the run would feed current or hold candidates."""
    settings = get_settings(tracker=tracker)
    today = _resolve_today(now)
    mode = select_mode(today, settings.hold_date)  # type: ignore[arg-type]
    rprint(f"[bold]{mode.value}[/bold] (today {today.isoformat()}, hold date {settings.hold_date})")


@app.command("queues")
def queues_cmd(tracker: TrackerOpt = None) -> None:
    """List the candidates and current queues."""
    settings = get_settings(tracker=tracker)
    provider = get_provider(settings)
    views = build_views(settings)

    try:
        current = provider.search(views.current)
        candidates = provider.search(views.candidates, order_by=CANDIDATE_ORDER)
    except TrackerError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    rprint(_queue_table("Current", current))
    rprint(_queue_table("Candidates", candidates))

    try:
        ensure_disjoint(candidates, current)
    except QueueOverlapError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


def _write_config(doc: tomlkit.TOMLDocument) -> None:
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(tomlkit.dumps(doc))


@app.command("set-default")
def set_default(
    tracker: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Set the default tracker profile in ~/.config/cmq/config.toml."""
    # Round-trip preserves any existing comments
    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()
    profiles = _list_profiles(doc)
    if CONFIG_PATH.exists() and tracker not in profiles:
        rprint(f"[red]Profile '{tracker}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}[/red]")
        raise typer.Exit(1)

    doc["default_tracker"] = tracker
    _write_config(doc)
    rprint(f'[green]✓[/green] Default tracker set to "{tracker}" in {CONFIG_PATH}')


@app.command("config-show")
def config_show(tracker: TrackerOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(tracker=tracker)

    rows = {
        "provider": settings.provider,
        "default_tracker": settings.default_tracker,
        "jira_url": settings.jira_url,
        "jira_user": settings.jira_user,
        "jira_password": "***" if settings.jira_password else None,
        "snapshot_path": settings.snapshot_path,
        "hold_date": settings.hold_date,
        "current_min": settings.current_min,
        "move_max": settings.move_max,
        "workspace": settings.workspace,
        "run_id": settings.run_id,
    }
    table = Table(title="CMQ Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for field, value in rows.items():
        table.add_row(field, "[dim](not set)[/dim]" if value is None else str(value))

    rprint(table)


@app.command("init")
def init_cmd() -> None:
    """Interactive first-time setup wizard."""
    rprint("[bold]CMQ Setup Wizard[/bold]")
    rprint("")

    provider = typer.prompt("Provider? [jira/snapshot]", default="jira").strip().lower()
    if provider not in ("jira", "snapshot"):
        rprint("[red]Invalid provider. Choose 'jira' or 'snapshot'.[/red]")
        raise typer.Exit(1)

    profile_name = typer.prompt("Profile name (e.g. moodle, rehearsal)").strip()
    if not profile_name:
        rprint("[red]Profile name cannot be empty.[/red]")
        raise typer.Exit(1)

    profile_config: dict = {"provider": provider}

    if provider == "jira":
        profile_config["jira_url"] = typer.prompt("Jira server URL", default="https://tracker.moodle.org").strip()
        profile_config["jira_user"] = typer.prompt("Jira user").strip()
        profile_config["jira_password"] = typer.prompt("Jira password", hide_input=True).strip()
    else:
        profile_config["snapshot_path"] = typer.prompt("Snapshot JSON file").strip()

    hold_date = typer.prompt("Hold date (YYYY-MM-DD, first day holding candidates)").strip()
    try:
        parse_calendar_date(hold_date)
    except ValueError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    profile_config["hold_date"] = hold_date

    set_as_default = typer.confirm(f"Set '{profile_name}' as default tracker?", default=True)

    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()
    doc[profile_name] = profile_config
    if set_as_default:
        doc["default_tracker"] = profile_name
    _write_config(doc)
    rprint(f"[green]✓[/green] Profile '{profile_name}' written to {CONFIG_PATH}")

    rprint("")
    config_show(tracker=profile_name)

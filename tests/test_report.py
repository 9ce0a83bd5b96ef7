"""Tests for the audit log and run report outputs."""

from datetime import date, datetime
from pathlib import Path

from rich.console import Console

from cmq.audit import AuditLog
from cmq.models import ActionResult, ActionStatus, Mode, RunReport
from cmq.report import report_table, write_report_csv


def _report() -> RunReport:
    return RunReport(
        run_id="1234",
        mode=Mode.FEED,
        today=date(2024, 6, 9),
        results=(
            ActionResult(step="1", issue_id="MDL-1", action="moved to current: important", status=ActionStatus.DONE),
            ActionResult(
                step="2a",
                issue_id="MDL-2",
                action="moved to current: threshold (before 2024-06-10)",
                status=ActionStatus.FAILED,
                error="Jira API POST /issue/MDL-2/transitions failed with 500, retry later",
            ),
        ),
    )


class TestAuditLog:
    def test_appends_one_line_per_record(self, tmp_path: Path) -> None:
        log = AuditLog(tmp_path / "ws" / "audit.log", run_id="99", started_at=datetime(2024, 6, 9, 7, 5, 1))
        log.record("MDL-1", "integration_held added")
        log.record("MDL-2", "moved to current: important")

        assert log.path.read_text().splitlines() == [
            "99 2024-06-09_07-05-01 MDL-1 integration_held added",
            "99 2024-06-09_07-05-01 MDL-2 moved to current: important",
        ]

    def test_keeps_previous_runs(self, tmp_path: Path) -> None:
        path = tmp_path / "audit.log"
        path.write_text("98 2024-06-08_07-05-01 MDL-7 integration_held added\n")
        AuditLog(path, run_id="99").record("MDL-1", "integration_held added")
        assert len(path.read_text().splitlines()) == 2


class TestReport:
    def test_csv(self, tmp_path: Path) -> None:
        path = tmp_path / "results.csv"
        write_report_csv(_report(), path)
        rows = path.read_text().splitlines()
        assert rows == [
            "run_id,step,issue,action,status,error",
            "1234,1,MDL-1,moved to current: important,done,",
            '1234,2a,MDL-2,moved to current: threshold (before 2024-06-10),failed,'
            '"Jira API POST /issue/MDL-2/transitions failed with 500, retry later"',
        ]

    def test_table_has_a_row_per_result(self) -> None:
        table = report_table(_report())
        assert table.row_count == 2

        console = Console(width=200, record=True)
        console.print(table)
        text = console.export_text()
        assert "MDL-2" in text
        assert "failed" in text

"""Tests for cmq.models."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from cmq.models import ActionResult, ActionStatus, Comment, Issue, Mode, Priority, RunReport


def test_issue_frozen(make_issue) -> None:
    issue = make_issue("MDL-1")
    with pytest.raises(Exception):  # ValidationError or TypeError depending on pydantic version
        issue.votes = 3  # type: ignore[misc]


def test_issue_defaults(make_issue) -> None:
    issue = make_issue("MDL-1")
    assert issue.labels == frozenset()
    assert issue.votes == 0
    assert issue.must_fix_version is None
    assert issue.security_level is None
    assert issue.comments == ()
    assert issue.in_integration is False


def test_priority_accepts_names() -> None:
    issue = Issue(id="MDL-1", type="Bug", status="Open", priority="blocker")  # type: ignore[arg-type]
    assert issue.priority is Priority.BLOCKER


def test_priority_ordering() -> None:
    assert Priority.MINOR < Priority.MAJOR < Priority.CRITICAL < Priority.BLOCKER


def test_unknown_priority_rejected() -> None:
    with pytest.raises(ValidationError):
        Issue(id="MDL-1", type="Bug", status="Open", priority="Urgent")  # type: ignore[arg-type]


def test_negative_votes_rejected() -> None:
    with pytest.raises(ValidationError):
        Issue(id="MDL-1", type="Bug", status="Open", votes=-1)


def test_run_report_splits_results() -> None:
    report = RunReport(
        run_id="1",
        mode=Mode.FEED,
        today=date(2024, 6, 1),
        results=(
            ActionResult(step="1", issue_id="MDL-1", action="a", status=ActionStatus.DONE),
            ActionResult(step="1", issue_id="MDL-2", action="a", status=ActionStatus.FAILED, error="boom"),
            ActionResult(step="0", issue_id="MDL-3", action="b", status=ActionStatus.SKIPPED),
        ),
    )
    assert [r.issue_id for r in report.failed] == ["MDL-2"]
    assert [r.issue_id for r in report.applied] == ["MDL-1"]


def test_naive_timestamps_read_as_utc() -> None:
    issue = Issue.model_validate(
        {
            "id": "MDL-1",
            "type": "Bug",
            "status": "Open",
            "last_comment_date": "2024-05-01T10:00:00",
            "comments": [{"body": "hi", "created": "2024-05-01T09:00:00"}],
        }
    )
    assert issue.last_comment_date == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert issue.comments[0].created == datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def test_aware_timestamps_kept() -> None:
    created = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    assert Comment(body="hi", created=created).created == created

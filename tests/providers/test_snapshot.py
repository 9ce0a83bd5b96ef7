"""Tests for SnapshotTracker."""

import json
from pathlib import Path

import pytest

from cmq.models import Priority
from cmq.providers.base import TrackerError
from cmq.providers.snapshot import SnapshotTracker
from cmq.queues import CANDIDATE_ORDER, build_views


def _write(tmp_path: Path, payload) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(payload))
    return path


class TestFromFile:
    def test_loads_issues(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            [
                {
                    "id": "MDL-1",
                    "type": "Bug",
                    "status": "Waiting for integration review",
                    "priority": "Blocker",
                    "labels": ["mdlqa"],
                    "comments": [{"body": "hi", "created": "2024-05-01T10:00:00Z"}],
                    "last_comment_date": "2024-05-01T10:00:00Z",
                }
            ],
        )
        tracker = SnapshotTracker.from_file(path)
        issue = tracker.get("MDL-1")
        assert issue.priority is Priority.BLOCKER
        assert issue.labels == frozenset({"mdlqa"})
        assert issue.comments[0].body == "hi"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(TrackerError, match="Cannot load snapshot"):
            SnapshotTracker.from_file(tmp_path / "nope.json")

    def test_invalid_content_raises(self, tmp_path: Path) -> None:
        with pytest.raises(TrackerError, match="Cannot load snapshot"):
            SnapshotTracker.from_file(_write(tmp_path, [{"id": "MDL-1"}]))


class TestSearch:
    def test_filters_orders_and_limits(self, make_issue, settings) -> None:
        tracker = SnapshotTracker(
            [
                make_issue("MDL-1", votes=1),
                make_issue("MDL-2", in_integration=True),
                make_issue("MDL-3", votes=9),
                make_issue("MDL-4", votes=5),
            ]
        )
        views = build_views(settings)
        assert [i.id for i in tracker.search(views.candidates, CANDIDATE_ORDER, limit=2)] == ["MDL-3", "MDL-4"]
        assert [i.id for i in tracker.search(views.current)] == ["MDL-2"]

    def test_orders_mixed_naive_and_aware_dates(self, tmp_path: Path, settings) -> None:
        waiting = {"type": "Bug", "status": "Waiting for integration review"}
        path = _write(
            tmp_path,
            [
                {"id": "MDL-1", **waiting, "last_comment_date": "2024-05-02T10:00:00+00:00"},
                {"id": "MDL-2", **waiting, "last_comment_date": "2024-05-01T10:00:00"},
            ],
        )
        tracker = SnapshotTracker.from_file(path)
        found = tracker.search(build_views(settings).candidates, CANDIDATE_ORDER)
        assert [i.id for i in found] == ["MDL-2", "MDL-1"]


class TestMutations:
    def test_add_label_and_comment(self, make_issue) -> None:
        tracker = SnapshotTracker([make_issue("MDL-1")])
        tracker.add_label("MDL-1", "integration_held")
        tracker.add_label("MDL-1", "integration_held")
        tracker.add_comment("MDL-1", "held")

        issue = tracker.get("MDL-1")
        assert issue.labels == frozenset({"integration_held"})
        assert [c.body for c in issue.comments] == ["held"]
        assert issue.last_comment_date == issue.comments[0].created

    def test_promote_sets_flag_and_comments(self, make_issue) -> None:
        tracker = SnapshotTracker([make_issue("MDL-1")])
        tracker.promote("MDL-1", "CI Global Self-Transition", {"customfield_10211": "Yes"}, "moving", "Integrators")

        issue = tracker.get("MDL-1")
        assert issue.in_integration
        assert [c.body for c in issue.comments] == ["moving"]

    def test_unknown_issue_raises(self) -> None:
        with pytest.raises(TrackerError, match="not found"):
            SnapshotTracker([]).add_comment("MDL-404", "x")

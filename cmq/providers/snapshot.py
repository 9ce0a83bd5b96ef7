"""In-memory tracker evaluating queue views locally over a JSON snapshot."""

import json
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from cmq.models import Comment, Issue
from cmq.providers.base import IssueTracker, TrackerError
from cmq.queues import IssueFilter, SortKey, sort_issues

_ISSUES = TypeAdapter(list[Issue])


class SnapshotTracker(IssueTracker):
    """Mutations only touch the in-memory copy; the snapshot file is never rewritten."""

    def __init__(self, issues: Iterable[Issue]) -> None:
        self._issues: dict[str, Issue] = {issue.id: issue for issue in issues}

    @classmethod
    def from_file(cls, path: Path) -> "SnapshotTracker":
        try:
            issues = _ISSUES.validate_python(json.loads(path.read_text()))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise TrackerError(f"Cannot load snapshot {path}: {exc}") from exc
        return cls(issues)

    @property
    def issues(self) -> list[Issue]:
        return list(self._issues.values())

    def get(self, issue_id: str) -> Issue:
        try:
            return self._issues[issue_id]
        except KeyError:
            raise TrackerError(f"Issue '{issue_id}' not found in snapshot") from None

    def _update(self, issue_id: str, **changes: object) -> None:
        self._issues[issue_id] = self.get(issue_id).model_copy(update=changes)

    def search(
        self,
        issue_filter: IssueFilter,
        order_by: Sequence[SortKey] = (),
        limit: int | None = None,
    ) -> list[Issue]:
        matches = sort_issues((i for i in self._issues.values() if issue_filter.predicate(i)), order_by)
        return matches if limit is None else matches[:limit]

    def add_label(self, issue_id: str, label: str) -> None:
        self._update(issue_id, labels=self.get(issue_id).labels | {label})

    def add_comment(self, issue_id: str, body: str) -> None:
        now = datetime.now(timezone.utc)
        issue = self.get(issue_id)
        self._update(issue_id, comments=(*issue.comments, Comment(body=body, created=now)), last_comment_date=now)

    def promote(
        self,
        issue_id: str,
        transition: str,
        fields: Mapping[str, str],
        comment: str,
        role: str,
    ) -> None:
        # Field ids mean nothing locally: the self-transition only ever sets the integration flag
        self._update(issue_id, in_integration=True)
        self.add_comment(issue_id, comment)

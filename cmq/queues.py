"""Queue views: each pairs a remote query (JQL) with the equivalent local predicate.

A tracker evaluates whichever half it understands. JiraTracker sends the JQL,
SnapshotTracker runs the predicate. The JQL defaults mirror the saved filters
the integration team maintains on tracker.moodle.org.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from cmq import criteria
from cmq.models import Issue
from cmq.settings import CmqSettings


class QueueOverlapError(RuntimeError):
    """Raised when an issue shows up in both the candidates and current views."""


@dataclass(frozen=True)
class IssueFilter:
    name: str
    jql: str
    predicate: Callable[[Issue], bool]


@dataclass(frozen=True)
class SortKey:
    jql_field: str
    attr: str  # Issue attribute used for local ordering
    descending: bool = False

    @property
    def jql(self) -> str:
        return f"{self.jql_field} {'DESC' if self.descending else 'ASC'}"


# Highest integration priority and severity first, then most voted, then the
# issue that has waited longest since its last comment.
CANDIDATE_ORDER: tuple[SortKey, ...] = (
    SortKey("'Integration priority'", "integration_priority", descending=True),
    SortKey("priority", "priority", descending=True),
    SortKey("votes", "votes", descending=True),
    SortKey("'Last comment date'", "last_comment_date"),
)


@dataclass(frozen=True)
class QueueViews:
    candidates: IssueFilter
    current: IssueFilter
    feature_hold: IssueFilter
    important: IssueFilter


def _quoted(values: Iterable[str]) -> str:
    return ", ".join(f"'{v}'" for v in sorted(values))


def build_views(settings: CmqSettings) -> QueueViews:
    candidates_jql = f"filter = {settings.candidates_filter}"
    important_clauses = " OR ".join(
        [
            f"filter = {settings.must_fix_filter}",
            f"labels IN ({criteria.MDLQA})",
            "priority IN (Critical, Blocker)",
            "level IS NOT EMPTY",
            f"component IN ({_quoted(criteria.IMPORTANT_COMPONENTS)})",
        ]
    )
    return QueueViews(
        candidates=IssueFilter("candidates", candidates_jql, criteria.in_candidates),
        current=IssueFilter(
            "current",
            f"project = {settings.project} "
            f"AND '{settings.integration_flag_name}' IS NOT EMPTY "
            f"AND status IN ('{criteria.WAITING_STATUS}')",
            criteria.in_current,
        ),
        feature_hold=IssueFilter(
            "feature_hold",
            f"{candidates_jql} "
            f"AND type IN ({_quoted(criteria.FEATURE_TYPES)}) "
            f"AND NOT filter = {settings.held_comment_filter}",
            criteria.needs_feature_hold,
        ),
        important=IssueFilter(
            "important",
            f"{candidates_jql} AND NOT filter = {settings.agreed_after_release_filter} AND ({important_clauses})",
            criteria.is_important,
        ),
    )


def order_jql(order_by: Iterable[SortKey]) -> str:
    return ", ".join(key.jql for key in order_by)


def sort_issues(issues: Iterable[Issue], order_by: Iterable[SortKey]) -> list[Issue]:
    """Sort locally the way the tracker sorts remotely.

    Missing values go last whatever the direction, so an unranked issue never
    outranks a ranked one.
    """
    result = list(issues)
    # Stable sorts applied from the least to the most significant key
    for key in reversed(list(order_by)):
        present = [i for i in result if getattr(i, key.attr) is not None]
        missing = [i for i in result if getattr(i, key.attr) is None]
        present.sort(key=lambda i, attr=key.attr: getattr(i, attr), reverse=key.descending)
        result = present + missing
    return result


def ensure_disjoint(candidates: Iterable[Issue], current: Iterable[Issue]) -> None:
    current_ids = {issue.id for issue in current}
    overlap = sorted(issue.id for issue in candidates if issue.id in current_ids)
    if overlap:
        raise QueueOverlapError(
            f"Issues found in both candidates and current queues: {', '.join(overlap)}. "
            "Check the candidates filter definition."
        )

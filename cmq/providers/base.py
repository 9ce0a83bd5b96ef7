"""Abstract base class for issue trackers."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from cmq.models import Issue
from cmq.queues import IssueFilter, SortKey


class TrackerError(RuntimeError):
    """A query or mutation against the tracker failed."""


class IssueTracker(ABC):
    @abstractmethod
    def search(
        self,
        issue_filter: IssueFilter,
        order_by: Sequence[SortKey] = (),
        limit: int | None = None,
    ) -> list[Issue]: ...

    @abstractmethod
    def add_label(self, issue_id: str, label: str) -> None: ...

    @abstractmethod
    def add_comment(self, issue_id: str, body: str) -> None: ...

    @abstractmethod
    def promote(
        self,
        issue_id: str,
        transition: str,
        fields: Mapping[str, str],
        comment: str,
        role: str,
    ) -> None:
        """Set otherwise hidden fields through a privileged self-transition."""

"""Keep the current queue fed while it sits under its threshold."""

from collections.abc import Set as AbstractSet

import structlog

from cmq.actions import QueuePromoter
from cmq.models import ActionResult, PromotionReason
from cmq.providers.base import IssueTracker
from cmq.queues import CANDIDATE_ORDER, QueueViews, ensure_disjoint

logger = structlog.get_logger(__name__)


class AdmissionController:
    def __init__(
        self,
        tracker: IssueTracker,
        promoter: QueuePromoter,
        views: QueueViews,
        *,
        current_min: int,
        move_max: int,
    ) -> None:
        self._tracker = tracker
        self._promoter = promoter
        self._views = views
        self._current_min = current_min
        self._move_max = move_max

    def feed(
        self,
        step: str = "2a",
        *,
        promoted: AbstractSet[str] = frozenset(),
        held: AbstractSet[str] = frozenset(),
    ) -> list[ActionResult]:
        """Promote ranked candidates until current reaches its threshold.

        ``promoted`` and ``held`` name issues this pass already decided on but
        that the tracker does not reflect yet (dry runs): promoted ones count
        towards current, and neither kind is selected again.
        """
        current = self._tracker.search(self._views.current)
        in_current = {issue.id for issue in current} | promoted
        log = logger.bind(step=step, current=len(in_current), current_min=self._current_min)
        log.info("queue.current_counted")
        if len(in_current) >= self._current_min or self._move_max == 0:
            log.info("queue.threshold_met")
            return []

        decided = promoted | held
        found = self._tracker.search(
            self._views.candidates, order_by=CANDIDATE_ORDER, limit=self._move_max + len(decided)
        )
        selected = [issue for issue in found if issue.id not in decided][: self._move_max]
        ensure_disjoint(selected, current)
        log.info("queue.feeding", selected=[issue.id for issue in selected])
        return [self._promoter.promote(issue, PromotionReason.THRESHOLD, step=step) for issue in selected]

"""Side-effecting steps: holding issues and promoting them to the current queue.

Both enforce their own idempotency check before touching the tracker and
return one ActionResult per issue. A failed mutation is recorded and the batch
continues, unless fail_fast asks for the first TrackerError to propagate.
"""

from collections.abc import Callable, Iterable

import structlog

from cmq import criteria
from cmq.audit import AuditLog
from cmq.models import ActionResult, ActionStatus, Issue, PromotionReason
from cmq.providers.base import IssueTracker, TrackerError
from cmq.settings import CmqSettings

logger = structlog.get_logger(__name__)


class _Mutator:
    def __init__(
        self,
        tracker: IssueTracker,
        audit: AuditLog,
        *,
        dry_run: bool = False,
        fail_fast: bool = False,
    ) -> None:
        self._tracker = tracker
        self._audit = audit
        self._dry_run = dry_run
        self._fail_fast = fail_fast

    def _apply(self, step: str, issue_id: str, action: str, mutate: Callable[[], None]) -> ActionResult:
        log = logger.bind(step=step, issue=issue_id, action=action)
        if self._dry_run:
            log.info("action.dry_run")
            return ActionResult(step=step, issue_id=issue_id, action=action, status=ActionStatus.DRY_RUN)

        log.info("action.processing")
        try:
            mutate()
        except TrackerError as exc:
            log.error("action.failed", error=str(exc))
            if self._fail_fast:
                raise
            return ActionResult(
                step=step, issue_id=issue_id, action=action, status=ActionStatus.FAILED, error=str(exc)
            )

        self._audit.record(issue_id, action)
        return ActionResult(step=step, issue_id=issue_id, action=action, status=ActionStatus.DONE)

    @staticmethod
    def _skip(step: str, issue_id: str, action: str, why: str) -> ActionResult:
        logger.info("action.skipped", step=step, issue=issue_id, action=action, reason=why)
        return ActionResult(step=step, issue_id=issue_id, action=action, status=ActionStatus.SKIPPED)


class HoldEnforcer(_Mutator):
    def hold(
        self,
        issues: Iterable[Issue],
        *,
        step: str,
        comment: str,
        marker: str,
        note: str,
    ) -> list[ActionResult]:
        """Label and comment every issue that does not carry ``marker`` yet.

        ``note`` is the audit description, e.g. "integration_held added".
        """
        results = []
        for issue in issues:
            if criteria.has_comment_containing(issue, marker):
                results.append(self._skip(step, issue.id, note, "already held"))
                continue

            def mutate(issue_id: str = issue.id) -> None:
                self._tracker.add_label(issue_id, criteria.INTEGRATION_HELD)
                self._tracker.add_comment(issue_id, comment)

            results.append(self._apply(step, issue.id, note, mutate))
        return results


class QueuePromoter(_Mutator):
    def __init__(
        self,
        tracker: IssueTracker,
        audit: AuditLog,
        settings: CmqSettings,
        *,
        dry_run: bool = False,
        fail_fast: bool = False,
    ) -> None:
        super().__init__(tracker, audit, dry_run=dry_run, fail_fast=fail_fast)
        self._settings = settings

    def comment_for(self, reason: PromotionReason) -> str:
        if reason == PromotionReason.IMPORTANT:
            return "Continuous queues manage: Moving to current because it's important"
        return (
            "Continuous queues manage: Moving to current given we are below the threshold "
            f"({self._settings.current_min})"
        )

    def note_for(self, reason: PromotionReason) -> str:
        if reason == PromotionReason.IMPORTANT:
            return "moved to current: important"
        return f"moved to current: threshold (before {self._settings.hold_date})"

    def promote(self, issue: Issue, reason: PromotionReason, *, step: str) -> ActionResult:
        note = self.note_for(reason)
        if issue.in_integration:
            return self._skip(step, issue.id, note, "already in current")

        s = self._settings

        def mutate() -> None:
            self._tracker.promote(
                issue.id,
                s.promote_transition,
                {s.integration_flag_field: "Yes"},
                self.comment_for(reason),
                s.promote_role,
            )

        return self._apply(step, issue.id, note, mutate)

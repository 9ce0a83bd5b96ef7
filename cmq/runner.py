"""One pass over the integration queues.

Steps, in order:
  0) hold new features and improvements that reached candidates without the
     standard held comment;
  1) move important candidates to current;
  2a) before the hold date, feed current from candidates when under threshold;
  2b) from the hold date on, hold every remaining candidate.

Every decision is re-derived from tracker state, so re-running a pass whose
mutations are already visible changes nothing. A dry run changes nothing, so
later steps are told which issues earlier steps already held or promoted.
"""

from datetime import date

import structlog

from cmq import criteria
from cmq.actions import HoldEnforcer, QueuePromoter
from cmq.admission import AdmissionController
from cmq.audit import AuditLog
from cmq.mode import select_mode
from cmq.models import ActionResult, ActionStatus, Mode, PromotionReason, RunReport
from cmq.providers.base import IssueTracker
from cmq.queues import build_views
from cmq.settings import CmqSettings

logger = structlog.get_logger(__name__)


def _pending(results: list[ActionResult]) -> frozenset[str]:
    """Issues decided on in a dry run, which the tracker will not show as changed."""
    return frozenset(r.issue_id for r in results if r.status == ActionStatus.DRY_RUN)


def run_pass(
    tracker: IssueTracker,
    settings: CmqSettings,
    audit: AuditLog,
    *,
    today: date,
    dry_run: bool = False,
    fail_fast: bool = False,
) -> RunReport:
    if settings.hold_date is None:
        raise ValueError("hold_date is required to run the queues")

    views = build_views(settings)
    mode = select_mode(today, settings.hold_date)
    holder = HoldEnforcer(tracker, audit, dry_run=dry_run, fail_fast=fail_fast)
    promoter = QueuePromoter(tracker, audit, settings, dry_run=dry_run, fail_fast=fail_fast)
    log = logger.bind(run_id=settings.run_id)
    log.info("run.start", mode=mode.value, today=today.isoformat(), hold_date=settings.hold_date.isoformat())

    features = tracker.search(views.feature_hold)
    log.info("step.start", step="0", found=len(features))
    feature_holds = holder.hold(
        features,
        step="0",
        comment=criteria.FEATURE_HOLD_COMMENT,
        marker=criteria.FEATURE_HOLD_MARKER,
        note="integration_held added",
    )
    held = _pending(feature_holds)

    important = [issue for issue in tracker.search(views.important) if issue.id not in held]
    log.info("step.start", step="1", found=len(important))
    promotions = [promoter.promote(issue, PromotionReason.IMPORTANT, step="1") for issue in important]
    promoted = _pending(promotions)

    results: list[ActionResult] = feature_holds + promotions

    if mode == Mode.FEED:
        controller = AdmissionController(
            tracker, promoter, views, current_min=settings.current_min, move_max=settings.move_max
        )
        results += controller.feed(step="2a", promoted=promoted, held=held)
    else:
        candidates = [issue for issue in tracker.search(views.candidates) if issue.id not in held | promoted]
        log.info("step.start", step="2b", found=len(candidates))
        results += holder.hold(
            candidates,
            step="2b",
            comment=criteria.LATE_HOLD_COMMENT,
            marker=criteria.LATE_HOLD_MARKER,
            note=f"integration_held added (since {settings.hold_date})",
        )

    report = RunReport(run_id=settings.run_id, mode=mode, today=today, results=tuple(results))
    log.info("run.finish", applied=len(report.applied), failed=len(report.failed))
    return report

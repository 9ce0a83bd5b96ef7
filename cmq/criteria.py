"""Pure predicates classifying an issue against the integration queue rules.

Nothing here talks to a tracker: every function only looks at fields already
present on the Issue, so the same rules back the snapshot tracker and the tests.
"""

from cmq.models import Issue, Priority

WAITING_STATUS = "Waiting for integration review"

INTEGRATION_HELD = "integration_held"
SECURITY_HELD = "security_held"
MDLQA = "mdlqa"

FEATURE_TYPES = frozenset({"New Feature", "Improvement"})
IMPORTANT_PRIORITIES = frozenset({Priority.CRITICAL, Priority.BLOCKER})
IMPORTANT_COMPONENTS = frozenset({"Privacy", "Automated functional tests (behat)", "Unit tests"})

AGREED_AFTER_RELEASE_MARKER = "agreed_to_be_after_release"

FEATURE_HOLD_COMMENT = """This issue has been sent to integration after the freeze.

If you want Moodle HQ to consider including it into the incoming major release please add the "{{unhold_requested}}" label, and post a comment here outlining good reasons why you think it should be considered for late integration into the next major release."""  # noqa: E501
FEATURE_HOLD_MARKER = "This issue has been sent to integration after the freeze."

LATE_HOLD_COMMENT = (
    "We are currently in the final week before release "
    "( https://docs.moodle.org/dev/Integration_Review#During_continuous_integration.2FFreeze.2FQA_period ) "
    "so this issue is being held until after release. Thanks for your patience!"
)
LATE_HOLD_MARKER = "so this issue is being held until after release"


def has_comment_containing(issue: Issue, text: str) -> bool:
    return any(text in comment.body for comment in issue.comments)


def is_held(issue: Issue) -> bool:
    return INTEGRATION_HELD in issue.labels or SECURITY_HELD in issue.labels


def in_candidates(issue: Issue) -> bool:
    """Awaiting integration, not yet in current, not held, not agreed to wait."""
    return (
        issue.status == WAITING_STATUS
        and not issue.in_integration
        and not is_held(issue)
        and not has_comment_containing(issue, AGREED_AFTER_RELEASE_MARKER)
    )


def in_current(issue: Issue) -> bool:
    return issue.in_integration and issue.status == WAITING_STATUS


def needs_feature_hold(issue: Issue) -> bool:
    return (
        issue.type in FEATURE_TYPES
        and in_candidates(issue)
        and not has_comment_containing(issue, FEATURE_HOLD_MARKER)
    )


def is_important(issue: Issue) -> bool:
    """Candidates that jump straight to the current queue.

    Only candidates qualify, so held issues and issues agreed to wait never do.
    A candidate qualifies with a must-fix version, the mdlqa label, critical or
    blocker priority, a security level, or a watched component.
    """
    if not in_candidates(issue):
        return False
    return (
        issue.must_fix_version is not None
        or MDLQA in issue.labels
        or issue.priority in IMPORTANT_PRIORITIES
        or issue.security_level is not None
        or any(component in IMPORTANT_COMPONENTS for component in issue.components)
    )

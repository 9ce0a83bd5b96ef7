"""Shared pydantic models: the contract between trackers, the decision engine and main.py."""

from datetime import date, datetime, timezone
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Priority(IntEnum):
    TRIVIAL = 1
    MINOR = 2
    MAJOR = 3
    CRITICAL = 4
    BLOCKER = 5

    @classmethod
    def from_name(cls, name: str) -> "Priority":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown priority '{name}'") from None


class Mode(str, Enum):
    FEED = "feed"  # keep the current queue fed from candidates
    HOLD = "hold"  # hold every remaining candidate until after release


class PromotionReason(str, Enum):
    IMPORTANT = "important"
    THRESHOLD = "threshold"


class ActionStatus(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"
    DRY_RUN = "dry-run"


def _as_utc(value: datetime | None) -> datetime | None:
    # Naive timestamps (hand-written snapshots) are read as UTC so they order against aware ones
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    body: str
    created: datetime | None = None

    @field_validator("created")
    @classmethod
    def _created_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # tracker key, e.g. MDL-12345
    type: str  # Bug | New Feature | Improvement | ...
    status: str
    priority: Priority = Priority.MAJOR
    labels: frozenset[str] = frozenset()
    votes: int = Field(default=0, ge=0)
    must_fix_version: str | None = None
    security_level: str | None = None  # None = not a security issue
    components: tuple[str, ...] = ()
    comments: tuple[Comment, ...] = ()
    in_integration: bool = False  # "Currently in integration"
    integration_priority: int | None = None
    last_comment_date: datetime | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_by_name(cls, value: object) -> object:
        # Snapshots and trackers spell priorities by name ("Blocker")
        if isinstance(value, str):
            return Priority.from_name(value)
        return value

    @field_validator("last_comment_date")
    @classmethod
    def _last_comment_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class ActionResult(BaseModel):
    """Outcome of one decision applied (or not) to one issue."""

    model_config = ConfigDict(frozen=True)

    step: str  # "0", "1", "2a", "2b"
    issue_id: str
    action: str  # audit description, e.g. "moved to current: important"
    status: ActionStatus
    error: str | None = None


class RunReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    run_id: str
    mode: Mode
    today: date
    results: tuple[ActionResult, ...] = ()

    @property
    def failed(self) -> list[ActionResult]:
        return [r for r in self.results if r.status == ActionStatus.FAILED]

    @property
    def applied(self) -> list[ActionResult]:
        return [r for r in self.results if r.status in (ActionStatus.DONE, ActionStatus.DRY_RUN)]

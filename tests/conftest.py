"""Shared test fixtures."""

from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

import pytest
import structlog

from cmq.audit import AuditLog
from cmq.criteria import WAITING_STATUS
from cmq.models import Issue, Priority
from cmq.settings import CmqSettings

HOLD_DATE = date(2024, 6, 10)


@pytest.fixture(autouse=True)
def reset_structlog():
    """The CLI callback points structlog at the runner's stderr; undo that between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    """Build a plain candidate: a waiting Major bug with nothing special about it."""

    def _make(issue_id: str, **overrides) -> Issue:
        fields: dict = {
            "id": issue_id,
            "type": "Bug",
            "status": WAITING_STATUS,
            "priority": Priority.MAJOR,
        }
        fields.update(overrides)
        return Issue(**fields)

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> CmqSettings:
    return CmqSettings(  # type: ignore[call-arg]
        provider="snapshot",
        snapshot_path=tmp_path / "snapshot.json",
        hold_date=HOLD_DATE,
        workspace=tmp_path,
        run_id="1234",
    )


@pytest.fixture
def audit(tmp_path: Path) -> AuditLog:
    return AuditLog(tmp_path / "audit.log", run_id="1234", started_at=datetime(2024, 6, 1, 10, 30, 0))

"""Append-only audit trail: one line per mutation sent to the tracker.

Line format: ``{run_id} {timestamp} {issue_id} {description}``. The file is the
only durable record of partial progress when a run stops early.
"""

from datetime import datetime
from pathlib import Path

AUDIT_LOG_NAME = "continuous_manage_queues.log"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


class AuditLog:
    def __init__(self, path: Path, run_id: str, started_at: datetime | None = None) -> None:
        self.path = path
        self.run_id = run_id
        # One timestamp per run, stamped on every line it writes
        self.timestamp = (started_at or datetime.now()).strftime(TIMESTAMP_FORMAT)

    def record(self, issue_id: str, description: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(f"{self.run_id} {self.timestamp} {issue_id} {description}\n")

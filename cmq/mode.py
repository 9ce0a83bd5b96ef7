"""Date-gated switch between feeding the current queue and holding candidates."""

import re
from datetime import date

from cmq.models import Mode

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_calendar_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD string.

    Raises ValueError for anything else, including valid ISO variants such as
    20240610 that date.fromisoformat would accept.
    """
    if not DATE_PATTERN.fullmatch(value):
        raise ValueError(f"Incorrect YYYY-MM-DD format detected: {value}")
    return date.fromisoformat(value)


def select_mode(now: date, hold_date: date) -> Mode:
    # The hold date itself already holds
    return Mode.FEED if now < hold_date else Mode.HOLD

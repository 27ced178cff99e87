from __future__ import annotations

from datetime import datetime

import pytz


def get_now_utc() -> datetime:
    """A helper function to return an aware UTC datetime representing the current time."""
    return datetime.now(tz=pytz.UTC)

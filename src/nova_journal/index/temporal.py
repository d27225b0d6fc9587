"""Note dates: filename parsing, relative-date labels, named time windows.

All timestamps are epoch milliseconds. Filename dates are interpreted in
local time, like the journal's own note names.
"""

from __future__ import annotations

import re
import time
from collections.abc import Mapping
from datetime import datetime

from nova_journal.index.models import TimeRange

MS_PER_DAY = 24 * 60 * 60 * 1000
DAYS_IN_WEEK = 7
DAYS_IN_MONTH = 30
MONTHS_IN_YEAR = 12

# Compact age labels switch unit below these limits.
_AGE_WEEKS_LIMIT = 5
_AGE_MONTHS_LIMIT = 12

# Window length in days for each named time frame.
TIME_FRAME_DAYS: dict[str, int] = {
    "recent": 3,
    "week": 7,
    "month": 30,
}

# YYYY-MM-DD, optionally followed by _HH-mm
_FILENAME_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})(?:_(\d{2})-(\d{2}))?")


def now_ms() -> int:
    return int(time.time() * 1000)


def extract_date_from_filename(name: str) -> int | None:
    """Return the timestamp encoded in *name*, or None.

    Missing time defaults to midnight. Impossible dates ("2024-02-30") and
    times ("25-00") yield None.
    """
    match = _FILENAME_DATE_RE.search(name)
    if match is None:
        return None
    year, month, day, hour, minute = match.groups()
    try:
        dt = datetime(
            int(year), int(month), int(day), int(hour or 0), int(minute or 0)
        )
    except ValueError:
        return None
    return int(dt.timestamp() * 1000)


def _days_between(timestamp: int, now: int) -> int:
    return (now - timestamp) // MS_PER_DAY


def format_date(timestamp: int, now: int | None = None) -> str:
    """Human label: today, yesterday, N days ago, N weeks ago, or "March 4"."""
    diff_days = _days_between(timestamp, now if now is not None else now_ms())
    if diff_days <= 0:
        return "today"
    if diff_days == 1:
        return "yesterday"
    if diff_days < DAYS_IN_WEEK:
        return f"{diff_days} days ago"
    if diff_days < DAYS_IN_MONTH:
        weeks = diff_days // DAYS_IN_WEEK
        return "1 week ago" if weeks == 1 else f"{weeks} weeks ago"
    dt = datetime.fromtimestamp(timestamp / 1000)
    return f"{dt:%B} {dt.day}"


def relative_age(timestamp: int, now: int | None = None) -> str:
    """Compact age label used in assembled context: 0d, 3d, 2w, 5m, 1y."""
    diff_days = max(0, _days_between(timestamp, now if now is not None else now_ms()))
    if diff_days < DAYS_IN_WEEK:
        return f"{diff_days}d"
    weeks = diff_days // DAYS_IN_WEEK
    if weeks < _AGE_WEEKS_LIMIT:
        return f"{weeks}w"
    months = diff_days // DAYS_IN_MONTH
    if months < _AGE_MONTHS_LIMIT:
        return f"{months}m"
    return f"{months // MONTHS_IN_YEAR}y"


def age_in_days(timestamp: int, now: int | None = None) -> float:
    return ((now if now is not None else now_ms()) - timestamp) / MS_PER_DAY


def get_time_range_for_frame(
    frame: str,
    now: int | None = None,
    frames: Mapping[str, int] | None = None,
) -> TimeRange:
    """Return the window ``[now - N days, now]`` for *frame* (recent/week/month).

    Raises:
        ValueError: If *frame* is not a known time frame.
    """
    table = frames if frames is not None else TIME_FRAME_DAYS
    if frame not in table:
        raise ValueError(
            f"Unknown time frame '{frame}'. Expected one of: {', '.join(sorted(table))}"
        )
    end = now if now is not None else now_ms()
    return TimeRange(start=end - table[frame] * MS_PER_DAY, end=end)

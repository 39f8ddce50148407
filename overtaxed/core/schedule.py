"""
Schedule-based monitoring, aligned with the Cook County release cadence.

- Reassessment season runs January through August; no checks Sep-Dec.
- A township is "active" while its appeal window is open or recently closed:
  notice_date - LEAD_DAYS <= day <= last_file_date + TRAIL_DAYS
"""
from datetime import date, datetime, timedelta
from typing import Mapping, Optional, Set, Union

from overtaxed.core.township_deadlines import TOWNSHIP_DEADLINES_2025, TownshipKey
from overtaxed.schemas.deadline import TownshipDeadline

SEASON_START_MONTH = 1
SEASON_END_MONTH = 8

# Data may appear before the notice date.
LEAD_DAYS = 14
# Final values may be certified well after the filing deadline.
TRAIL_DAYS = 45

DayLike = Union[date, datetime]


def _as_day(value: DayLike) -> date:
    # datetime is a date subclass; reduce it so time-of-day never matters
    if isinstance(value, datetime):
        return value.date()
    return value


def is_in_reassessment_season(day: DayLike) -> bool:
    month = _as_day(day).month
    return SEASON_START_MONTH <= month <= SEASON_END_MONTH


def get_active_township_names_for_checks(
    day: DayLike,
    calendar: Optional[Mapping[TownshipKey, TownshipDeadline]] = None,
) -> Set[TownshipKey]:
    today = _as_day(day)
    entries = TOWNSHIP_DEADLINES_2025 if calendar is None else calendar
    active: Set[TownshipKey] = set()

    for key, deadline in entries.items():
        if deadline.notice_date is None or deadline.last_file_date is None:
            continue
        window_start = deadline.notice_date - timedelta(days=LEAD_DAYS)
        window_end = deadline.last_file_date + timedelta(days=TRAIL_DAYS)
        if window_start <= today <= window_end:
            active.add(key)

    return active

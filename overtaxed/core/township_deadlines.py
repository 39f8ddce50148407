"""
Cook County township appeal deadlines (Assessor's Assessment & Appeal Calendar).
Source: https://www.cookcountyassessoril.gov/assessment-calendar-and-deadlines

Keys are normalized township names (see normalize_township). The table is
static reference data and is refreshed by hand when the Assessor publishes
a new calendar.
"""
import re
from datetime import date
from typing import Dict, NewType, Optional

from overtaxed.schemas.deadline import TownshipDeadline, TownshipDeadlineInfo

ASSESSOR_CALENDAR_URL = "https://www.cookcountyassessoril.gov/assessment-calendar-and-deadlines"

TownshipKey = NewType("TownshipKey", str)

_TOWNSHIP_SUFFIX = re.compile(r"\s*township\s*$", re.IGNORECASE)


def _d(notice: str, last_file: str) -> TownshipDeadline:
    return TownshipDeadline(
        notice_date=date.fromisoformat(notice),
        last_file_date=date.fromisoformat(last_file),
    )


TOWNSHIP_DEADLINES_2025: Dict[TownshipKey, TownshipDeadline] = {
    TownshipKey(name): deadline
    for name, deadline in {
        "norwood park": _d("2025-03-24", "2025-05-05"),
        "evanston": _d("2025-04-09", "2025-05-21"),
        "new trier": _d("2025-04-23", "2025-06-05"),
        "elk grove": _d("2025-05-06", "2025-06-18"),
        "maine": _d("2025-06-04", "2025-07-18"),
        "northfield": _d("2025-06-17", "2025-07-31"),
        "barrington": _d("2025-07-03", "2025-08-15"),
        "leyden": _d("2025-07-21", "2025-09-02"),
        "wheeling": _d("2025-08-18", "2025-09-30"),
        "palatine": _d("2025-09-09", "2025-10-22"),
        "niles": _d("2025-10-22", "2025-12-05"),
        "schaumburg": _d("2025-10-02", "2025-11-17"),
        "hanover": _d("2025-11-06", "2025-12-22"),
        "riverside": _d("2025-03-07", "2025-04-18"),
        "river forest": _d("2025-03-07", "2025-04-18"),
        "rogers park": _d("2025-03-12", "2025-04-23"),
        "berwyn": _d("2025-03-25", "2025-05-06"),
        "oak park": _d("2025-04-08", "2025-05-20"),
        "palos": _d("2025-04-19", "2025-06-02"),
        "cicero": _d("2025-04-24", "2025-06-06"),
        "lake view": _d("2025-05-23", "2025-07-09"),
        "lyons": _d("2025-06-02", "2025-07-16"),
        "stickney": _d("2025-06-11", "2025-07-25"),
        "west chicago": _d("2025-07-09", "2025-08-20"),
        "lemont": _d("2025-07-21", "2025-09-02"),
        "bremen": _d("2025-07-10", "2025-08-21"),
        "jefferson": _d("2025-08-21", "2025-10-03"),
        "hyde park": _d("2025-08-04", "2025-09-16"),
        "proviso": _d("2025-08-25", "2025-10-07"),
        "calumet": _d("2025-07-30", "2025-09-11"),
        "rich": _d("2025-10-21", "2025-12-04"),
        "worth": _d("2025-08-11", "2025-09-23"),
        "orland": _d("2025-09-10", "2025-10-23"),
        "thornton": _d("2025-10-01", "2025-11-14"),
        "bloom": _d("2025-10-24", "2025-12-09"),
        "south chicago": _d("2025-10-15", "2025-11-28"),
        "lake": _d("2025-09-22", "2025-11-04"),
        "north chicago": _d("2025-10-07", "2025-11-20"),
    }.items()
}


def normalize_township(township: Optional[str]) -> Optional[TownshipKey]:
    """
    Lowercase, trim and drop a trailing "Township" so that
    "Evanston Township", " EVANSTON " and "evanston" share one key.
    Returns None for missing or blank input.
    """
    if not township or not township.strip():
        return None
    key = _TOWNSHIP_SUFFIX.sub("", township.strip().lower()).strip()
    return TownshipKey(key) if key else None


def get_township_deadline(township: Optional[str]) -> Optional[TownshipDeadlineInfo]:
    key = normalize_township(township)
    if key is None:
        return None
    deadline = TOWNSHIP_DEADLINES_2025.get(key)
    if deadline is None:
        return None
    return TownshipDeadlineInfo(
        notice_date=deadline.notice_date,
        last_file_date=deadline.last_file_date,
        calendar_url=ASSESSOR_CALENDAR_URL,
    )

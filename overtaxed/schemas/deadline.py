from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class TownshipDeadline(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Both dates are required in practice; a missing one excludes the
    # township from active-window checks.
    notice_date: Optional[date] = None
    last_file_date: Optional[date] = None


class TownshipDeadlineInfo(BaseModel):
    notice_date: date
    last_file_date: date
    calendar_url: str


class DeadlineLookupResponse(BaseModel):
    township: Optional[str] = None
    calendar_url: str
    notice_date: Optional[date] = None
    last_file_date: Optional[date] = None
    note: str


class ActiveTownshipsResponse(BaseModel):
    day: date
    in_reassessment_season: bool
    active_townships: List[str] = []

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from overtaxed.core.schedule import get_active_township_names_for_checks, is_in_reassessment_season
from overtaxed.core.township_deadlines import ASSESSOR_CALENDAR_URL, get_township_deadline
from overtaxed.schemas.deadline import ActiveTownshipsResponse, DeadlineLookupResponse

router = APIRouter(prefix="/api")


@router.get("/properties/lookup-deadline", response_model=DeadlineLookupResponse)
async def lookup_deadline(township: Optional[str] = Query(None)):
    """
    Appeal window for a township from the Assessor calendar. Unknown
    townships are a normal answer (null dates), not an error.
    """
    info = get_township_deadline(township)
    if info is None:
        return DeadlineLookupResponse(
            township=township,
            calendar_url=ASSESSOR_CALENDAR_URL,
            note="Cook County appeal deadlines vary by township. Check the Assessor calendar for your township's appeal window.",
        )
    return DeadlineLookupResponse(
        township=township,
        calendar_url=info.calendar_url,
        notice_date=info.notice_date,
        last_file_date=info.last_file_date,
        note=f"Based on 2025 Assessor calendar for {township}. Verify at the Assessor website.",
    )


@router.get("/schedule/active-townships", response_model=ActiveTownshipsResponse)
async def active_townships(day: date = Query(..., alias="date")):
    return ActiveTownshipsResponse(
        day=day,
        in_reassessment_season=is_in_reassessment_season(day),
        active_townships=sorted(get_active_township_names_for_checks(day)),
    )

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import Response
import logging

from overtaxed.core.appeal_status import can_change_property_on_appeal
from overtaxed.core.appeal_summary import build_appeal_summary_pdf
from overtaxed.core.township_deadlines import get_township_deadline
from overtaxed.db.repository import Repository, get_repository
from overtaxed.schemas.appeal import Appeal, ChangePropertyRequest

router = APIRouter(prefix="/api/appeals")
logger = logging.getLogger(__name__)

LOCKED_PROPERTY_MESSAGE = (
    "Cannot change the property on a submitted appeal. Once filed, the appeal is locked to that PIN. "
    "Only draft or pending-filing appeals can be reassigned to a different property."
)


def _owned_appeal(repo: Repository, appeal_id: str, user_id: str) -> Appeal:
    appeal = repo.get_appeal(appeal_id)
    if appeal is None or appeal.user_id != user_id:
        raise HTTPException(status_code=404, detail="Appeal not found")
    return appeal


@router.patch("/{appeal_id}/property", response_model=Appeal)
async def change_appeal_property(
    appeal_id: str,
    body: ChangePropertyRequest,
    x_user_id: str = Header(..., alias="X-User-ID"),
    repo: Repository = Depends(get_repository),
):
    appeal = _owned_appeal(repo, appeal_id, x_user_id)

    # Gate before any mutation
    if not can_change_property_on_appeal(appeal.status):
        raise HTTPException(status_code=409, detail=LOCKED_PROPERTY_MESSAGE)

    if body.property_id == appeal.property_id:
        return appeal

    prop = repo.get_property(body.property_id)
    if prop is None or prop.user_id != x_user_id:
        raise HTTPException(status_code=404, detail="Property not found")

    appeal.property_id = prop.id
    appeal.original_assessment_value = prop.current_assessment_value or appeal.original_assessment_value
    repo.update_appeal(appeal)
    logger.info(f"Appeal {appeal.id} moved to property {prop.id}")
    return appeal


@router.get("/{appeal_id}/download-summary")
def download_summary(
    appeal_id: str,
    x_user_id: str = Header(..., alias="X-User-ID"),
    repo: Repository = Depends(get_repository),
):
    appeal = _owned_appeal(repo, appeal_id, x_user_id)
    prop = repo.get_property(appeal.property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")

    try:
        pdf_bytes = build_appeal_summary_pdf(
            appeal,
            prop,
            repo.list_comparables(appeal.id),
            get_township_deadline(prop.township),
        )
    except Exception as e:
        logger.error(f"PDF Build Failed: {str(e)}")
        raise HTTPException(status_code=500, detail="PDF generation failed during document build.")

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=appeal-summary-{prop.pin}-{appeal.tax_year}.pdf"},
    )

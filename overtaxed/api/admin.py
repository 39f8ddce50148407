from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
import logging

from overtaxed.api.deps import get_now, verify_admin_key
from overtaxed.core.performance_fee import (
    SavingsLookupError,
    create_performance_fee_invoice,
    get_performance_plan_window,
    get_three_year_savings,
    should_create_performance_invoice,
)
from overtaxed.db.repository import DuplicateInvoiceError, Repository, get_repository
from overtaxed.schemas.billing import CreatePerformanceInvoiceRequest
from overtaxed.schemas.invoice import InvoiceType
from overtaxed.schemas.user import SubscriptionTier

router = APIRouter(prefix="/api/admin", dependencies=[Depends(verify_admin_key)])
logger = logging.getLogger(__name__)


@router.get("/performance")
def performance_overview(
    repo: Repository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> List[Dict[str, Any]]:
    """Performance Plan users with their window, savings and invoice eligibility."""
    overview = []
    for user in repo.list_users(SubscriptionTier.PERFORMANCE):
        window = get_performance_plan_window(repo, user.id)
        try:
            savings = get_three_year_savings(repo, user.id)
            check = should_create_performance_invoice(repo, user.id, now)
            reason = None if check.should else check.reason
        except SavingsLookupError as e:
            logger.error(str(e))
            savings, check, reason = None, None, "savings_lookup_failed"

        overview.append({
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "performance_plan_start_date": user.performance_plan_start_date,
            "performance_plan_payment_option": user.performance_plan_payment_option,
            "invoices": [
                {"id": i.id, "status": i.status, "amount": i.amount, "due_date": i.due_date}
                for i in repo.list_invoices(user.id)
                if i.invoice_type == InvoiceType.PERFORMANCE_FEE
            ],
            "window": window.model_dump() if window else None,
            "savings": {
                "total_savings": savings.total_savings,
                "fee_amount": savings.fee_amount,
                "appeal_count": len(savings.appeal_ids),
            } if savings else None,
            "can_create_invoice": bool(check and check.should),
            "invoice_reason": reason,
        })
    return overview


@router.post("/create-performance-invoice")
def create_performance_invoice(
    body: CreatePerformanceInvoiceRequest,
    repo: Repository = Depends(get_repository),
    now: datetime = Depends(get_now),
):
    try:
        check = should_create_performance_invoice(repo, body.user_id, now)
    except SavingsLookupError as e:
        logger.error(str(e))
        raise HTTPException(status_code=502, detail="Savings lookup failed")

    if not check.should:
        raise HTTPException(status_code=400, detail={"error": "Invoice not eligible", "reason": check.reason or "unknown"})

    try:
        invoice_ids = create_performance_fee_invoice(repo, body.user_id, check.savings, check.payment_option, now)
    except DuplicateInvoiceError:
        raise HTTPException(status_code=409, detail={"error": "Invoice not eligible", "reason": "invoice_already_exists"})

    logger.info(f"Admin created {len(invoice_ids)} performance invoice(s) for user {body.user_id}")
    return {
        "success": True,
        "message": f"Created {len(invoice_ids)} invoice(s)",
        "invoice_ids": invoice_ids,
        "total_savings": check.savings.total_savings,
        "fee_amount": check.savings.fee_amount,
    }

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from overtaxed.api.deps import get_assessment_source, get_now, verify_cron_secret
from overtaxed.core.assessment_check import run_assessment_checks
from overtaxed.core.cook_county import AssessmentSource
from overtaxed.core.dunning import run_invoice_collections
from overtaxed.core.mailer import Mailer, get_mailer
from overtaxed.core.performance_fee import run_performance_invoices
from overtaxed.core.reminders import run_deadline_reminders
from overtaxed.db.repository import Repository, get_repository
from overtaxed.schemas.jobs import (
    AssessmentCheckRunResult,
    CollectionsRunResult,
    PerformanceInvoiceRunResult,
    ReminderRunResult,
)

# Scheduled jobs, triggered by an external scheduler with GET + bearer secret.
# The job functions are synchronous, so FastAPI runs these handlers in its threadpool.
router = APIRouter(prefix="/api/cron", dependencies=[Depends(verify_cron_secret)])


@router.get("/performance-invoices", response_model=PerformanceInvoiceRunResult)
def performance_invoices(
    repo: Repository = Depends(get_repository),
    now: datetime = Depends(get_now),
):
    return run_performance_invoices(repo, now)


@router.get("/invoice-collections", response_model=CollectionsRunResult)
def invoice_collections(
    repo: Repository = Depends(get_repository),
    mailer: Optional[Mailer] = Depends(get_mailer),
    now: datetime = Depends(get_now),
):
    return run_invoice_collections(repo, mailer, now)


@router.get("/deadline-reminders", response_model=ReminderRunResult)
def deadline_reminders(
    repo: Repository = Depends(get_repository),
    mailer: Optional[Mailer] = Depends(get_mailer),
    now: datetime = Depends(get_now),
):
    return run_deadline_reminders(repo, mailer, now)


@router.get("/assessment-checks", response_model=AssessmentCheckRunResult)
def assessment_checks(
    repo: Repository = Depends(get_repository),
    source: AssessmentSource = Depends(get_assessment_source),
    mailer: Optional[Mailer] = Depends(get_mailer),
    now: datetime = Depends(get_now),
):
    return run_assessment_checks(repo, source, mailer, now)

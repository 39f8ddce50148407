from pydantic import BaseModel
from typing import List, Optional


# Summaries returned by the scheduled jobs (and serialized by the cron endpoints).

class SkippedUser(BaseModel):
    user_id: str
    reason: str


class FailedUser(BaseModel):
    user_id: str
    error: str


class PerformanceInvoiceRunResult(BaseModel):
    success: bool = True
    performance_users_checked: int = 0
    invoices_created: int = 0
    invoice_ids: List[str] = []
    skipped: int = 0
    skipped_details: List[SkippedUser] = []
    errors: int = 0
    error_details: List[FailedUser] = []


class CollectionNoticeResult(BaseModel):
    invoice_id: str
    notice: int = 0
    sent: bool = False
    reason: Optional[str] = None


class CollectionsRunResult(BaseModel):
    success: bool = True
    overdue_count: int = 0
    notices_sent: int = 0
    errors: int = 0
    results: List[CollectionNoticeResult] = []


class ReminderResult(BaseModel):
    appeal_id: str
    days_remaining: int
    sent: bool = False
    reason: Optional[str] = None


class ReminderRunResult(BaseModel):
    success: bool = True
    appeals_checked: int = 0
    emails_sent: int = 0
    errors: int = 0
    results: List[ReminderResult] = []


class AssessmentCheckResult(BaseModel):
    property_id: str
    pin: str
    updated: bool = False
    new_years: List[int] = []
    increase_detected: bool = False
    error: Optional[str] = None


class AssessmentCheckRunResult(BaseModel):
    success: bool = True
    skipped: bool = False
    skip_reason: Optional[str] = None
    properties_checked: int = 0
    updated: int = 0
    increases_detected: int = 0
    errors: int = 0
    results: List[AssessmentCheckResult] = []

"""
Collections dunning for overdue invoices.

Notices escalate through four tiers. The next tier is fully determined by how
many letters were already sent, so a tier can never be skipped:

    tier  letters already sent  days overdue
    1     0                     >= 7
    2     1                     >= 14
    3     2                     >= 30
    4     3                     >= 45
"""
from datetime import datetime
from enum import IntEnum
from typing import Optional
import logging
import math

from overtaxed.core.config import Settings, settings as default_settings
from overtaxed.core.mailer import Mailer, RenderedEmail, render_email
from overtaxed.db.repository import Repository
from overtaxed.schemas.invoice import Invoice
from overtaxed.schemas.jobs import CollectionNoticeResult, CollectionsRunResult
from overtaxed.schemas.user import User

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class NoticeTier(IntEnum):
    FIRST = 1
    SECOND = 2
    THIRD = 3
    FINAL = 4

    @property
    def letters_required(self) -> int:
        return int(self) - 1

    @property
    def min_days_overdue(self) -> int:
        return _MIN_DAYS_OVERDUE[self]

    @property
    def template_name(self) -> str:
        return f"invoice_overdue_{int(self)}"


_MIN_DAYS_OVERDUE = {
    NoticeTier.FIRST: 7,
    NoticeTier.SECOND: 14,
    NoticeTier.THIRD: 30,
    NoticeTier.FINAL: 45,
}


def days_overdue(due_date: datetime, now: datetime) -> int:
    return math.floor((now - due_date).total_seconds() / SECONDS_PER_DAY)


def select_notice_tier(days_overdue: int, letters_sent: int) -> Optional[NoticeTier]:
    for tier in NoticeTier:
        if letters_sent == tier.letters_required and days_overdue >= tier.min_days_overdue:
            return tier
    return None


def render_collection_notice(
    tier: NoticeTier,
    invoice: Invoice,
    user: User,
    overdue_days: int,
    config: Settings = default_settings,
) -> RenderedEmail:
    context = {
        "user_name": user.name,
        "invoice_number": invoice.invoice_number,
        "amount": invoice.amount,
        "due_date": invoice.due_date,
        "days_overdue": overdue_days,
        "account_link": config.account_link(),
    }
    if tier is NoticeTier.FINAL:
        context["terms_link"] = config.terms_link()
    return render_email(tier.template_name, **context)


def _send_collection_notice(
    repo: Repository,
    mailer: Optional[Mailer],
    invoice: Invoice,
    result: CollectionNoticeResult,
    now: datetime,
    config: Settings,
):
    overdue_days = days_overdue(invoice.due_date, now)
    tier = select_notice_tier(overdue_days, invoice.collection_letters_sent)
    if tier is None:
        result.reason = "no_notice_due"
        return
    result.notice = int(tier)

    user = repo.get_user(invoice.user_id)
    if user is None or not user.email:
        result.reason = "no_recipient"
        return
    if mailer is None:
        result.reason = "email_not_configured"
        return

    # Claim the tier before sending so an overlapping run cannot send it too
    if not repo.claim_collection_notice(invoice.id, invoice.collection_letters_sent, now):
        result.reason = "in_progress"
        return

    try:
        message = render_collection_notice(tier, invoice, user, overdue_days, config)
        mailer.send(user.email, message)
    except Exception:
        # Counter untouched; the same tier is retried on the next run.
        repo.release_collection_claim(invoice.id)
        raise

    result.sent = True
    if not repo.record_collection_letter(invoice.id, invoice.collection_letters_sent, now):
        result.reason = "already_advanced"
        logger.warning(f"Invoice {invoice.id} letter count moved during this run; not incremented again")


def run_invoice_collections(
    repo: Repository,
    mailer: Optional[Mailer],
    now: datetime,
    config: Settings = default_settings,
) -> CollectionsRunResult:
    overdue = repo.list_overdue_invoices(now)
    run = CollectionsRunResult(overdue_count=len(overdue))

    for invoice in overdue:
        result = CollectionNoticeResult(invoice_id=invoice.id)
        run.results.append(result)
        try:
            _send_collection_notice(repo, mailer, invoice, result, now, config)
        except Exception as e:
            logger.error(f"Collection notice for invoice {invoice.id} failed: {e}")
            result.reason = str(e)
            run.errors += 1

    run.notices_sent = sum(1 for r in run.results if r.sent)
    logger.info(
        f"Invoice collections COMPLETED. Overdue: {run.overdue_count}, "
        f"sent: {run.notices_sent}, errors: {run.errors}"
    )
    return run

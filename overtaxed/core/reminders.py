from datetime import datetime, timedelta
from typing import Optional
import logging
import math

from overtaxed.core.config import Settings, settings as default_settings
from overtaxed.core.cook_county import format_pin
from overtaxed.core.mailer import Mailer, render_email
from overtaxed.db.repository import Repository
from overtaxed.schemas.appeal import Appeal, AppealStatus
from overtaxed.schemas.jobs import ReminderResult, ReminderRunResult

logger = logging.getLogger(__name__)

LOOKAHEAD_DAYS = 7
# Remind a week out, three days out and the day before; not every day.
REMINDER_DAYS = {7, 3, 1}
PRE_FILING_STATUSES = (AppealStatus.DRAFT, AppealStatus.PENDING_FILING)


def days_remaining(deadline: datetime, now: datetime) -> int:
    return math.ceil((deadline - now).total_seconds() / (24 * 60 * 60))


def _send_reminder(
    repo: Repository,
    mailer: Optional[Mailer],
    appeal: Appeal,
    result: ReminderResult,
    config: Settings,
):
    user = repo.get_user(appeal.user_id)
    prop = repo.get_property(appeal.property_id)
    if user is None or not user.email or prop is None:
        result.reason = "no_recipient"
        return
    if mailer is None:
        result.reason = "email_not_configured"
        return

    message = render_email(
        "deadline_reminder",
        user_name=user.name,
        property_address=f"{prop.address}, {prop.city}, {prop.state}",
        pin=format_pin(prop.pin),
        tax_year=appeal.tax_year,
        deadline=appeal.filing_deadline,
        days_remaining=result.days_remaining,
        appeal_link=config.appeal_link(appeal.id),
    )
    mailer.send(user.email, message)
    result.sent = True


def run_deadline_reminders(
    repo: Repository,
    mailer: Optional[Mailer],
    now: datetime,
    config: Settings = default_settings,
) -> ReminderRunResult:
    appeals = repo.list_appeals_with_deadline_between(
        PRE_FILING_STATUSES, now, now + timedelta(days=LOOKAHEAD_DAYS)
    )
    run = ReminderRunResult(appeals_checked=len(appeals))

    for appeal in appeals:
        remaining = days_remaining(appeal.filing_deadline, now)
        if remaining not in REMINDER_DAYS:
            continue

        result = ReminderResult(appeal_id=appeal.id, days_remaining=remaining)
        run.results.append(result)
        try:
            _send_reminder(repo, mailer, appeal, result, config)
        except Exception as e:
            logger.error(f"Deadline reminder for appeal {appeal.id} failed: {e}")
            result.reason = str(e)
            run.errors += 1

    run.emails_sent = sum(1 for r in run.results if r.sent)
    logger.info(f"Deadline reminders COMPLETED. Appeals: {run.appeals_checked}, sent: {run.emails_sent}")
    return run

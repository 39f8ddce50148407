"""
Performance Plan billing: 4% of the tax savings won over a 3-year window.

The eligibility check is a pure read against the repository; invoice creation
is a separate step that the repository guards against double-invoicing.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging
import secrets
import string
import time

from overtaxed.db.repository import DuplicateInvoiceError, Repository
from overtaxed.schemas.appeal import Appeal, AppealOutcome
from overtaxed.schemas.billing import PerformanceFeeCheck, PerformancePlanWindow, ThreeYearSavings
from overtaxed.schemas.invoice import Invoice, InvoiceType, YearSavings
from overtaxed.schemas.jobs import FailedUser, PerformanceInvoiceRunResult, SkippedUser
from overtaxed.schemas.user import PaymentOption, SubscriptionTier

logger = logging.getLogger(__name__)

FEE_PERCENTAGE = 0.04
PLAN_YEARS = 3
DUE_OFFSET_DAYS = 30
INSTALLMENT_COUNT = 3

QUALIFYING_OUTCOMES = {AppealOutcome.WON, AppealOutcome.PARTIALLY_WON}


class SavingsLookupError(Exception):
    """The savings collaborator failed; distinct from a "no savings" verdict."""


def _add_years(value: datetime, years: int) -> datetime:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return value.replace(year=value.year + years, day=28)


def get_performance_plan_window(repo: Repository, user_id: str) -> Optional[PerformancePlanWindow]:
    user = repo.get_user(user_id)
    if not user or user.subscription_tier != SubscriptionTier.PERFORMANCE or not user.performance_plan_start_date:
        return None
    start = user.performance_plan_start_date
    return PerformancePlanWindow(
        start_date=start,
        end_date=_add_years(start, PLAN_YEARS),
        start_year=start.year,
        end_year=start.year + PLAN_YEARS - 1,
    )


def _qualifying_appeals(repo: Repository, user_id: str, window: PerformancePlanWindow) -> List[Appeal]:
    return [
        a for a in repo.list_appeals(user_id)
        if a.outcome in QUALIFYING_OUTCOMES
        and a.tax_savings is not None
        and window.start_year <= a.tax_year <= window.end_year
    ]


class SavingsCalculator(ABC):
    @abstractmethod
    def compute(self, repo: Repository, user_id: str) -> Optional[ThreeYearSavings]:
        """Savings inside the plan window, or None when the user has no window."""


class AppealSavingsCalculator(SavingsCalculator):
    """Sums tax savings from won / partially won appeals in the plan's tax years."""

    def compute(self, repo: Repository, user_id: str) -> Optional[ThreeYearSavings]:
        window = get_performance_plan_window(repo, user_id)
        if window is None:
            return None

        breakdown: Dict[int, YearSavings] = {}
        appeal_ids: List[str] = []
        total = 0.0

        for appeal in _qualifying_appeals(repo, user_id, window):
            savings = float(appeal.tax_savings or 0)
            if savings <= 0:
                continue
            total += savings
            appeal_ids.append(appeal.id)
            year = breakdown.setdefault(appeal.tax_year, YearSavings())
            year.savings += savings
            year.appeal_ids.append(appeal.id)

        return ThreeYearSavings(
            total_savings=total,
            fee_amount=total * FEE_PERCENTAGE,
            appeal_ids=appeal_ids,
            breakdown_by_year=breakdown,
            start_year=window.start_year,
            end_year=window.end_year,
        )


def get_three_year_savings(
    repo: Repository,
    user_id: str,
    calculator: Optional[SavingsCalculator] = None,
) -> Optional[ThreeYearSavings]:
    calculator = calculator or AppealSavingsCalculator()
    try:
        return calculator.compute(repo, user_id)
    except SavingsLookupError:
        raise
    except Exception as e:
        raise SavingsLookupError(f"Savings lookup failed for user {user_id}: {e}") from e


def should_create_performance_invoice(
    repo: Repository,
    user_id: str,
    now: datetime,
    calculator: Optional[SavingsCalculator] = None,
) -> PerformanceFeeCheck:
    """
    Upfront users are invoiced once the 3-year window has ended; installment
    users as soon as a first reduction exists. Raises SavingsLookupError when
    the savings collaborator fails.
    """
    user = repo.get_user(user_id)
    if not user or user.subscription_tier != SubscriptionTier.PERFORMANCE:
        return PerformanceFeeCheck(should=False, reason="not_performance_user")
    if not user.performance_plan_start_date:
        return PerformanceFeeCheck(should=False, reason="no_plan_start_date")

    savings = get_three_year_savings(repo, user_id, calculator)
    if not savings or savings.total_savings <= 0:
        return PerformanceFeeCheck(should=False, reason="no_savings")

    payment_option = user.performance_plan_payment_option or PaymentOption.UPFRONT
    window = get_performance_plan_window(repo, user_id)
    if window is None:
        return PerformanceFeeCheck(should=False, reason="no_window")

    if repo.find_active_performance_invoice(user_id) is not None:
        return PerformanceFeeCheck(should=False, reason="invoice_already_exists")

    if payment_option == PaymentOption.UPFRONT and now < window.end_date:
        return PerformanceFeeCheck(should=False, reason="window_not_ended")

    return PerformanceFeeCheck(should=True, savings=savings, payment_option=payment_option)


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    millis = int((now.timestamp() if now else time.time()) * 1000)
    alphabet = string.digits + string.ascii_uppercase
    ts = ""
    while True:
        millis, rem = divmod(millis, 36)
        ts = alphabet[rem] + ts
        if not millis:
            break
    suffix = "".join(secrets.choice(alphabet) for _ in range(4))
    return f"INV-PF-{ts}-{suffix}"


def _first_reduction_date(repo: Repository, user_id: str, savings: ThreeYearSavings) -> Optional[datetime]:
    dates = [
        a.decision_date for a in repo.list_appeals(user_id)
        if a.outcome in QUALIFYING_OUTCOMES
        and a.tax_savings is not None
        and a.decision_date is not None
        and savings.start_year <= a.tax_year <= savings.end_year
    ]
    return min(dates) if dates else None


def split_installments(fee_amount: float, count: int = INSTALLMENT_COUNT) -> List[float]:
    """Equal cents-rounded installments; the rounding remainder goes on the last one."""
    per_installment = round(fee_amount / count, 2)
    remainder = round(fee_amount - per_installment * count, 2)
    amounts = [per_installment] * count
    amounts[-1] = round(per_installment + remainder, 2)
    return amounts


def create_performance_fee_invoice(
    repo: Repository,
    user_id: str,
    savings: ThreeYearSavings,
    payment_option: PaymentOption,
    now: datetime,
) -> List[str]:
    """
    Upfront: one invoice due 30 days from now.
    Installments: three invoices due 30 days after the first reduction and
    then on each anniversary. Raises DuplicateInvoiceError if another run got there first.
    """
    common = dict(
        user_id=user_id,
        currency="USD",
        invoice_type=InvoiceType.PERFORMANCE_FEE,
        performance_plan_appeal_ids=list(savings.appeal_ids),
        tax_savings_total=savings.total_savings,
        tax_savings_breakdown=savings.breakdown_by_year,
        payment_option=payment_option,
    )

    if payment_option == PaymentOption.UPFRONT:
        invoices = [Invoice(
            invoice_number=generate_invoice_number(now),
            amount=savings.fee_amount,
            fee_amount=savings.fee_amount,
            due_date=now + timedelta(days=DUE_OFFSET_DAYS),
            **common,
        )]
    else:
        user = repo.get_user(user_id)
        anchor = (
            _first_reduction_date(repo, user_id, savings)
            or (user.performance_plan_start_date if user else None)
            or now
        )
        base_due = anchor + timedelta(days=DUE_OFFSET_DAYS)
        invoices = [
            Invoice(
                invoice_number=generate_invoice_number(now),
                amount=amount,
                fee_amount=amount,
                installment_number=number,
                due_date=_add_years(base_due, number - 1),
                **common,
            )
            for number, amount in enumerate(split_installments(savings.fee_amount), start=1)
        ]

    stored = repo.add_performance_invoices(user_id, invoices)
    return [inv.id for inv in stored]


def run_performance_invoices(
    repo: Repository,
    now: datetime,
    calculator: Optional[SavingsCalculator] = None,
) -> PerformanceInvoiceRunResult:
    users = repo.list_users(SubscriptionTier.PERFORMANCE)
    run = PerformanceInvoiceRunResult(performance_users_checked=len(users))

    for user in users:
        try:
            check = should_create_performance_invoice(repo, user.id, now, calculator)
            if not check.should:
                run.skipped_details.append(SkippedUser(user_id=user.id, reason=check.reason or "unknown"))
                continue
            invoice_ids = create_performance_fee_invoice(repo, user.id, check.savings, check.payment_option, now)
            run.invoice_ids.extend(invoice_ids)
        except DuplicateInvoiceError:
            run.skipped_details.append(SkippedUser(user_id=user.id, reason="invoice_already_exists"))
        except Exception as e:
            logger.error(f"Performance invoice check failed for user {user.id}: {e}")
            run.error_details.append(FailedUser(user_id=user.id, error=str(e)))

    run.invoices_created = len(run.invoice_ids)
    run.skipped = len(run.skipped_details)
    run.errors = len(run.error_details)
    logger.info(
        f"Performance invoices COMPLETED. Users: {run.performance_users_checked}, "
        f"created: {run.invoices_created}, skipped: {run.skipped}, errors: {run.errors}"
    )
    return run

"""
Appeal status helpers for gaming prevention.

Once an appeal is submitted (filed with the county) its property is locked.
Only DRAFT and PENDING_FILING appeals may have their property changed. The two
checks below are independent: a status outside both sets is neither.
"""
from typing import FrozenSet, Union

from overtaxed.schemas.appeal import AppealStatus

APPEAL_STATUS_SUBMITTED: FrozenSet[str] = frozenset({
    AppealStatus.FILED.value,
    AppealStatus.UNDER_REVIEW.value,
    AppealStatus.HEARING_SCHEDULED.value,
    AppealStatus.DECISION_PENDING.value,
    AppealStatus.APPROVED.value,
    AppealStatus.PARTIALLY_APPROVED.value,
    AppealStatus.DENIED.value,
    AppealStatus.WITHDRAWN.value,
})

APPEAL_STATUS_CHANGEABLE: FrozenSet[str] = frozenset({
    AppealStatus.DRAFT.value,
    AppealStatus.PENDING_FILING.value,
})


def _status_value(status: Union[AppealStatus, str]) -> str:
    return status.value if isinstance(status, AppealStatus) else str(status)


def is_appeal_submitted(status: Union[AppealStatus, str]) -> bool:
    return _status_value(status) in APPEAL_STATUS_SUBMITTED


def can_change_property_on_appeal(status: Union[AppealStatus, str]) -> bool:
    return _status_value(status) in APPEAL_STATUS_CHANGEABLE

from pydantic import BaseModel
from typing import Dict, List, Optional
from overtaxed.schemas.common import UtcDatetime

from overtaxed.schemas.invoice import YearSavings
from overtaxed.schemas.user import PaymentOption


class PerformancePlanWindow(BaseModel):
    start_date: UtcDatetime
    end_date: UtcDatetime
    start_year: int
    end_year: int


class ThreeYearSavings(BaseModel):
    total_savings: float
    fee_amount: float
    appeal_ids: List[str] = []
    breakdown_by_year: Dict[int, YearSavings] = {}
    start_year: int
    end_year: int


class PerformanceFeeCheck(BaseModel):
    should: bool
    reason: Optional[str] = None
    savings: Optional[ThreeYearSavings] = None
    payment_option: Optional[PaymentOption] = None


class CreatePerformanceInvoiceRequest(BaseModel):
    user_id: str


class PlanLimitInfo(BaseModel):
    tier: str
    property_limit: int
    property_count: int
    can_add_property: bool

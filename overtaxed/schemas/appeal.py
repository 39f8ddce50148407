from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from overtaxed.schemas.common import UtcDatetime
import uuid


class AppealStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_FILING = "PENDING_FILING"
    FILED = "FILED"
    UNDER_REVIEW = "UNDER_REVIEW"
    HEARING_SCHEDULED = "HEARING_SCHEDULED"
    DECISION_PENDING = "DECISION_PENDING"
    APPROVED = "APPROVED"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    DENIED = "DENIED"
    WITHDRAWN = "WITHDRAWN"


class AppealOutcome(str, Enum):
    WON = "WON"
    PARTIALLY_WON = "PARTIALLY_WON"
    DENIED = "DENIED"
    WITHDRAWN = "WITHDRAWN"


class Appeal(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    property_id: str
    tax_year: int
    appeal_type: str = "ASSESSOR"
    status: AppealStatus = AppealStatus.DRAFT
    outcome: Optional[AppealOutcome] = None
    tax_savings: Optional[float] = None
    decision_date: Optional[UtcDatetime] = None
    filing_deadline: Optional[UtcDatetime] = None
    original_assessment_value: float = 0.0
    requested_assessment_value: Optional[float] = None


class ComparableProperty(BaseModel):
    pin: str
    address: str
    comp_type: str = "SALES"
    neighborhood: Optional[str] = None
    building_class: Optional[str] = None
    living_area: Optional[float] = None
    year_built: Optional[int] = None
    sale_price: Optional[float] = None
    sale_date: Optional[str] = None
    assessed_market_value: Optional[float] = None


class ChangePropertyRequest(BaseModel):
    property_id: str

from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from overtaxed.schemas.common import UtcDatetime
import uuid

from overtaxed.schemas.user import PaymentOption


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class InvoiceType(str, Enum):
    SUBSCRIPTION = "SUBSCRIPTION"
    PERFORMANCE_FEE = "PERFORMANCE_FEE"


class YearSavings(BaseModel):
    savings: float = 0.0
    appeal_ids: List[str] = []


class Invoice(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    invoice_number: str
    amount: float
    currency: str = "USD"
    status: InvoiceStatus = InvoiceStatus.PENDING
    invoice_type: InvoiceType = InvoiceType.SUBSCRIPTION
    due_date: UtcDatetime
    collection_letters_sent: int = 0
    last_collection_letter_sent_at: Optional[UtcDatetime] = None

    # Performance fee details
    payment_option: Optional[PaymentOption] = None
    installment_number: Optional[int] = None
    fee_amount: Optional[float] = None
    tax_savings_total: Optional[float] = None
    tax_savings_breakdown: Dict[int, YearSavings] = Field(default_factory=dict)
    performance_plan_appeal_ids: List[str] = []

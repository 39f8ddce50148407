from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from overtaxed.schemas.common import UtcDatetime
import uuid


class SubscriptionTier(str, Enum):
    COMPS_ONLY = "COMPS_ONLY"
    STARTER = "STARTER"
    GROWTH = "GROWTH"
    PORTFOLIO = "PORTFOLIO"
    PERFORMANCE = "PERFORMANCE"


class PaymentOption(str, Enum):
    UPFRONT = "UPFRONT"
    INSTALLMENTS = "INSTALLMENTS"


class User(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    email: Optional[str] = None
    name: Optional[str] = None
    subscription_tier: SubscriptionTier = SubscriptionTier.COMPS_ONLY
    performance_plan_start_date: Optional[UtcDatetime] = None
    performance_plan_payment_option: Optional[PaymentOption] = None

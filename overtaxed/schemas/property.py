from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from overtaxed.schemas.common import UtcDatetime
import re
import uuid


class Property(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    pin: str
    address: str = ""
    city: str = ""
    state: str = "IL"
    zip_code: str = ""
    township: Optional[str] = None
    monitoring_enabled: bool = True
    current_assessment_value: Optional[float] = None
    current_land_value: Optional[float] = None
    current_improvement_value: Optional[float] = None
    current_market_value: Optional[float] = None
    last_checked_at: Optional[UtcDatetime] = None

    @field_validator("pin")
    @classmethod
    def validate_pin(cls, v):
        digits = re.sub(r"[^0-9]", "", v)
        if len(digits) != 14:
            raise ValueError("PIN must contain exactly 14 digits")
        return digits


class AssessmentHistory(BaseModel):
    property_id: str
    tax_year: int
    assessment_value: float
    land_value: Optional[float] = None
    improvement_value: Optional[float] = None
    market_value: Optional[float] = None
    change_amount: Optional[float] = None
    change_percent: Optional[float] = None
    source: str = ""


class AssessmentRecord(BaseModel):
    """One year of assessed values as published by the county."""
    year: int
    assessed_land_value: Optional[float] = None
    assessed_building_value: Optional[float] = None
    assessed_total_value: Optional[float] = None
    market_value: Optional[float] = None
    stage: str = "mailed"


class CountyPropertyData(BaseModel):
    pin: str
    township: Optional[str] = None
    assessment_history: List[AssessmentRecord] = []


class CreatePropertyRequest(BaseModel):
    pin: str
    address: str = ""
    city: str = ""
    zip_code: str = ""
    township: Optional[str] = None

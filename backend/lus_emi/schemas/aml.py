from pydantic import BaseModel, Field
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from typing import Optional

from lus_emi.models.aml import AmlAlertStatus, AmlConfigType

class AmlConfigurationCreate(BaseModel):
    config_type: AmlConfigType
    threshold_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = None

class AmlConfigurationUpdate(BaseModel):
    threshold_amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = None
    is_active: Optional[bool] = None

class AmlConfigurationRead(BaseModel):
    id: UUID
    config_type: AmlConfigType
    threshold_amount: float
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

class AmlAlertReview(BaseModel):
    status: AmlAlertStatus
    review_notes: Optional[str] = None

class AmlAlertRead(BaseModel):
    id: UUID
    user_id: UUID
    transaction_id: Optional[UUID] = None
    alert_type: AmlConfigType
    risk_score: int
    trigger_amount: Optional[float] = None
    threshold_amount: Optional[float] = None
    description: str
    status: AmlAlertStatus
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    flagged_at: datetime

    class Config:
        from_attributes = True

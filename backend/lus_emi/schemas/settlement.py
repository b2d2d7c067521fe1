from pydantic import BaseModel, Field
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from typing import Optional

from lus_emi.models.settlement import (
    HoldReason,
    RejectReason,
    SettlementStatus,
    REASON_COMMENT_MAX_LENGTH,
)
from lus_emi.models.transaction import Priority

class SettlementCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    bank_name: str = Field(min_length=1)
    account_number: str = Field(min_length=1)
    priority: Priority = Priority.MEDIUM

# comment length is checked in the service so the API answers with the
# documented message instead of a generic 422
class SettlementHold(BaseModel):
    hold_reason: HoldReason
    reason_comment: Optional[str] = None

class SettlementReject(BaseModel):
    reject_reason: RejectReason
    reason_comment: Optional[str] = None

class SettlementRead(BaseModel):
    id: UUID
    organization_id: UUID
    user_id: UUID
    amount: float
    bank_name: str
    account_number: str
    status: SettlementStatus
    priority: Priority
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    hold_reason: Optional[HoldReason] = None
    reject_reason: Optional[RejectReason] = None
    reason_comment: Optional[str] = Field(default=None, max_length=REASON_COMMENT_MAX_LENGTH)
    created_at: datetime

    class Config:
        from_attributes = True

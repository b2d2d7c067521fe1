from pydantic import BaseModel, Field
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from typing import Optional

from lus_emi.models.transaction import Priority, TransactionStatus, TransactionType

class TransactionCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    type: TransactionType = TransactionType.CASH_DIGITIZATION
    vmf_number: Optional[str] = None
    description: Optional[str] = None
    cashier_otp: Optional[str] = Field(default=None, min_length=6, max_length=6)

class TransactionVerify(BaseModel):
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    vmf_number: Optional[str] = None

class TransactionReject(BaseModel):
    reason: str = Field(min_length=1, max_length=255)

class PriorityUpdate(BaseModel):
    priority: Priority

class TransactionRead(BaseModel):
    id: UUID
    reference: str
    from_user_id: Optional[UUID] = None
    to_user_id: UUID
    assigned_cashier_id: Optional[UUID] = None
    processed_by: Optional[UUID] = None
    amount: float
    type: TransactionType
    status: TransactionStatus
    priority: Priority
    vmf_number: Optional[str] = None
    description: Optional[str] = None
    rejection_reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True

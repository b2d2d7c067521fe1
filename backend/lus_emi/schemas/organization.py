from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import Optional

from lus_emi.models.organization import KycStatus

class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1)
    business_type: Optional[str] = None
    registration_number: Optional[str] = None
    tpin: Optional[str] = None
    address: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

class KycUpdate(BaseModel):
    kyc_status: KycStatus

class LimitsUpdate(BaseModel):
    single_transaction_limit: Optional[Decimal] = Field(default=None, gt=0)
    daily_transaction_limit: Optional[Decimal] = Field(default=None, gt=0)
    monthly_transaction_limit: Optional[Decimal] = Field(default=None, gt=0)

class OrganizationRead(BaseModel):
    id: UUID
    name: str
    business_type: Optional[str] = None
    registration_number: Optional[str] = None
    tpin: Optional[str] = None
    address: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    kyc_status: KycStatus
    is_active: bool
    single_transaction_limit: float
    daily_transaction_limit: float
    monthly_transaction_limit: float
    created_at: datetime

    class Config:
        from_attributes = True

from pydantic import BaseModel, Field
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

class WalletRead(BaseModel):
    id: UUID
    user_id: UUID
    balance: float
    daily_limit: float
    daily_collected: float
    daily_transferred: float
    last_reset_date: date
    last_transaction_at: Optional[datetime] = None
    is_active: bool

    class Config:
        from_attributes = True

class WalletSummary(WalletRead):
    today_completed: float
    today_total: float
    todays_collections: float
    user_role: str

class DailyLimitUpdate(BaseModel):
    daily_limit: Decimal = Field(gt=0, max_digits=12, decimal_places=2)

class MerchantWalletRead(BaseModel):
    user_id: UUID
    email: str
    display_name: str
    balance: float
    daily_collected: float
    daily_limit: float

class SettlementBreakdown(BaseModel):
    todays_collections: float
    pending_total: float
    settlement_capacity: float
    by_status: dict[str, int]

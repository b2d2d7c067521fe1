from pydantic import BaseModel
from uuid import UUID
from datetime import datetime

class CashierSessionRead(BaseModel):
    id: UUID
    cashier_id: UUID
    otp: str
    expires_at: datetime
    is_active: bool

    class Config:
        from_attributes = True

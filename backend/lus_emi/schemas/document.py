from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Optional

class DocumentRead(BaseModel):
    id: UUID
    user_id: UUID
    transaction_id: Optional[UUID] = None
    organization_id: Optional[UUID] = None
    filename: str
    original_name: str
    mime_type: str
    size: int
    type: str
    created_at: datetime

    class Config:
        from_attributes = True

from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Optional

class NotificationRead(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[UUID] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True

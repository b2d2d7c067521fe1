import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid
from lus_emi.database import Base, utc_now


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)

    type = Column(String, nullable=False)   # settlement_status_change, transaction_update, system_alert
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)

    related_entity_type = Column(String, nullable=True)  # settlement_request, transaction
    related_entity_id = Column(Uuid(as_uuid=True), nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now)

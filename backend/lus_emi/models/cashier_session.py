import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid
from lus_emi.database import Base, utc_now


class CashierSession(Base):
    __tablename__ = "cashier_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    cashier_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)

    otp = Column(String(6), index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)

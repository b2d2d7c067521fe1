import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid
from lus_emi.database import Base, utc_now


class QrCode(Base):
    __tablename__ = "qr_codes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("transactions.id"), nullable=False)

    qr_code_hash = Column(String(64), unique=True, index=True, nullable=False)  # sha256 of qr_data
    qr_data = Column(String, nullable=False)

    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)

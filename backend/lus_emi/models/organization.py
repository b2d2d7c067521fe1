import enum
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship
from lus_emi.database import Base, str_enum, utc_now


class KycStatus(str, enum.Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    business_type = Column(String, nullable=True)

    registration_number = Column(String, nullable=True)  # PACRA
    tpin = Column(String, nullable=True)                 # ZRA TPIN
    address = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)

    kyc_status = Column(str_enum(KycStatus), nullable=False, default=KycStatus.PENDING)
    is_active = Column(Boolean, default=True, nullable=False)

    single_transaction_limit = Column(Numeric(12, 2), nullable=False, default=Decimal("500000.00"))
    daily_transaction_limit = Column(Numeric(12, 2), nullable=False, default=Decimal("5000000.00"))
    monthly_transaction_limit = Column(Numeric(12, 2), nullable=False, default=Decimal("50000000.00"))

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    users = relationship("User", back_populates="organization")

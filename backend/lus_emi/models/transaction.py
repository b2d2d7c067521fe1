# lus_emi/models/transaction.py
import enum
import uuid
from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Uuid
from lus_emi.database import Base, str_enum, utc_now


class TransactionType(str, enum.Enum):
    CASH_DIGITIZATION = "cash_digitization"
    RTP = "rtp"
    QR_CODE_PAYMENT = "qr_code_payment"
    SETTLEMENT = "settlement"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reference = Column(String, unique=True, index=True, nullable=False)  # LUS-XXXXXX

    from_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    to_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)   # merchant
    assigned_cashier_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    processed_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(str_enum(TransactionType), nullable=False)
    status = Column(str_enum(TransactionStatus), nullable=False, default=TransactionStatus.PENDING)
    priority = Column(str_enum(Priority), nullable=False, default=Priority.MEDIUM)

    vmf_number = Column(String, nullable=True)
    description = Column(String, nullable=True)
    rejection_reason = Column(String, nullable=True)

    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

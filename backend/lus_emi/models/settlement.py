import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Uuid
from lus_emi.database import Base, str_enum, utc_now
from lus_emi.models.transaction import Priority


class SettlementStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    HOLD = "hold"
    REJECTED = "rejected"
    COMPLETED = "completed"


class HoldReason(str, enum.Enum):
    INSUFFICIENT_DOCUMENTATION = "insufficient_documentation"
    SETTLEMENT_COVER = "settlement_cover"
    PENDING_VERIFICATION = "pending_verification"
    OTHER = "other"


class RejectReason(str, enum.Enum):
    INVALID_ACCOUNT_DETAILS = "invalid_account_details"
    DUPLICATE_REQUEST = "duplicate_request"
    POLICY_VIOLATION = "policy_violation"
    OTHER = "other"


REASON_COMMENT_MAX_LENGTH = 125


class SettlementRequest(Base):
    __tablename__ = "settlement_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    bank_name = Column(String, nullable=False)
    account_number = Column(String, nullable=False)

    status = Column(str_enum(SettlementStatus), nullable=False, default=SettlementStatus.PENDING)
    priority = Column(str_enum(Priority), nullable=False, default=Priority.MEDIUM)

    reviewed_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    hold_reason = Column(str_enum(HoldReason), nullable=True)
    reject_reason = Column(str_enum(RejectReason), nullable=True)
    reason_comment = Column(String(REASON_COMMENT_MAX_LENGTH), nullable=True)

    created_at = Column(DateTime, default=utc_now, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

import enum
import uuid
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Numeric, Uuid
from lus_emi.database import Base, str_enum, utc_now


class AmlConfigType(str, enum.Enum):
    SINGLE_TRANSACTION = "single_transaction"
    DAILY_TOTAL = "daily_total"
    WEEKLY_VOLUME = "weekly_volume"


class AmlAlertStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    CLEARED = "cleared"
    ESCALATED = "escalated"


HIGH_RISK_SCORE = 70


class AmlConfiguration(Base):
    __tablename__ = "aml_configurations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    config_type = Column(str_enum(AmlConfigType), nullable=False)
    threshold_amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class AmlAlert(Base):
    __tablename__ = "aml_alerts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("transactions.id"), nullable=True)

    alert_type = Column(str_enum(AmlConfigType), nullable=False)
    risk_score = Column(Integer, nullable=False)
    trigger_amount = Column(Numeric(12, 2), nullable=True)
    threshold_amount = Column(Numeric(12, 2), nullable=True)
    description = Column(String, nullable=False)

    status = Column(str_enum(AmlAlertStatus), nullable=False, default=AmlAlertStatus.PENDING)
    reviewed_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_notes = Column(String, nullable=True)

    flagged_at = Column(DateTime, default=utc_now)
    created_at = Column(DateTime, default=utc_now, index=True)

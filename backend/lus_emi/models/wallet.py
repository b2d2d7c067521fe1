import uuid
from decimal import Decimal
from sqlalchemy import Column, Boolean, Date, DateTime, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import relationship
from lus_emi.database import Base, utc_now


def _today():
    return utc_now().date()


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False)

    balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    daily_limit = Column(Numeric(12, 2), nullable=False, default=Decimal("1000000.00"))
    daily_collected = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))    # merchants
    daily_transferred = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))  # cashiers

    last_reset_date = Column(Date, nullable=False, default=_today)
    last_transaction_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="wallet")

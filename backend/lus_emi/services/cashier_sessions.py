import secrets
from datetime import timedelta

from sqlalchemy.orm import Session

from lus_emi.core.config import settings
from lus_emi.core.errors import PermissionDeniedError, ValidationError
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.cashier_session import CashierSession
from lus_emi.models.user import Role, User

logger = get_logger(__name__)


def _new_otp(db: Session) -> str:
    now = utc_now()
    while True:
        otp = f"{secrets.randbelow(10 ** 6):06d}"
        clash = db.query(CashierSession).filter(
            CashierSession.otp == otp,
            CashierSession.is_active.is_(True),
            CashierSession.expires_at > now,
        ).first()
        if not clash:
            return otp


def open_session(db: Session, cashier: User) -> CashierSession:
    if cashier.role != Role.CASHIER:
        raise PermissionDeniedError("Only cashiers can open a session")

    # one live OTP per cashier
    db.query(CashierSession).filter(
        CashierSession.cashier_id == cashier.id,
        CashierSession.is_active.is_(True),
    ).update({CashierSession.is_active: False}, synchronize_session=False)

    session = CashierSession(
        cashier_id=cashier.id,
        otp=_new_otp(db),
        expires_at=utc_now() + timedelta(seconds=settings.CASHIER_OTP_TTL_SECONDS),
        is_active=True,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("cashier_session_opened", cashier_id=str(cashier.id), expires_at=session.expires_at.isoformat())
    return session


def current_session(db: Session, cashier: User) -> CashierSession | None:
    return (
        db.query(CashierSession)
        .filter(
            CashierSession.cashier_id == cashier.id,
            CashierSession.is_active.is_(True),
            CashierSession.expires_at > utc_now(),
        )
        .order_by(CashierSession.created_at.desc())
        .first()
    )


def resolve_otp(db: Session, otp: str) -> CashierSession:
    session = (
        db.query(CashierSession)
        .filter(
            CashierSession.otp == otp,
            CashierSession.is_active.is_(True),
            CashierSession.expires_at > utc_now(),
        )
        .first()
    )
    if not session:
        raise ValidationError("Invalid or expired cashier OTP")
    return session

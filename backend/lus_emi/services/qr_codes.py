import hashlib
import json
import secrets
from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from lus_emi.core.config import settings
from lus_emi.core.errors import ConflictError, EMIError, NotFoundError, PermissionDeniedError, ValidationError
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.qr_code import QrCode
from lus_emi.models.transaction import Transaction, TransactionStatus
from lus_emi.models.user import Role, User
from lus_emi.services.transactions import get_transaction
from lus_emi.services.wallet import to_money

logger = get_logger(__name__)


class QrCodeExpiredError(EMIError):
    status_code = 400

    def __init__(self, qr_code: QrCode):
        super().__init__("QR code has expired", qr_id=str(qr_code.id))
        self.qr_code = qr_code


def hash_payload(qr_data: str) -> str:
    return hashlib.sha256(qr_data.encode("utf-8")).hexdigest()


def generate(db: Session, merchant: User, transaction_id: UUID) -> tuple[QrCode, Transaction]:
    tx = get_transaction(db, transaction_id)
    if tx.to_user_id != merchant.id:
        raise PermissionDeniedError("QR codes can only be generated for your own transactions")
    if TransactionStatus(tx.status) != TransactionStatus.PENDING:
        raise ValidationError("QR codes can only be generated for pending transactions")

    now = utc_now()
    active = db.query(QrCode).filter(
        QrCode.transaction_id == tx.id,
        QrCode.is_used.is_(False),
        QrCode.expires_at > now,
    ).first()
    if active:
        raise ConflictError(
            "An active QR code already exists for this transaction",
            expires_at=active.expires_at.isoformat(),
        )

    qr_data = json.dumps({
        "reference": tx.reference,
        "amount": float(to_money(tx.amount)),
        "type": tx.type.value,
        "timestamp": now.isoformat(),
        "nonce": secrets.token_hex(8),
    }, sort_keys=True)

    qr_code = QrCode(
        transaction_id=tx.id,
        qr_code_hash=hash_payload(qr_data),
        qr_data=qr_data,
        expires_at=now + timedelta(seconds=settings.QR_CODE_EXPIRY_SECONDS),
        is_used=False,
    )
    db.add(qr_code)
    db.commit()
    db.refresh(qr_code)
    logger.info("qr_code_generated", reference=tx.reference, qr_id=str(qr_code.id))
    return qr_code, tx


def verify(db: Session, cashier: User, qr_data: str) -> Transaction:
    if cashier.role not in (Role.CASHIER, Role.ADMIN):
        raise PermissionDeniedError("Only cashiers can verify QR codes")

    qr_code = (
        db.query(QrCode)
        .filter(QrCode.qr_code_hash == hash_payload(qr_data), QrCode.is_used.is_(False))
        .with_for_update()
        .first()
    )
    if not qr_code:
        raise NotFoundError("QR code not found or already used")
    if qr_code.expires_at <= utc_now():
        raise QrCodeExpiredError(qr_code)

    tx = get_transaction(db, qr_code.transaction_id)
    if TransactionStatus(tx.status) != TransactionStatus.PENDING:
        raise ValidationError(f"Transaction is {TransactionStatus(tx.status).value}, not pending")

    updated = (
        db.query(QrCode)
        .filter(QrCode.id == qr_code.id, QrCode.is_used.is_(False))
        .update({"is_used": True, "used_at": utc_now()}, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        raise NotFoundError("QR code not found or already used")

    db.commit()
    logger.info("qr_code_verified", reference=tx.reference, cashier_id=str(cashier.id))
    return tx

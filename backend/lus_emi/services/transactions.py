"""
Transaction lifecycle for merchant cash collections.

A merchant requests a collection (amount + VMF voucher number); a cashier
counts the cash and either completes it, when amount and VMF match exactly,
or the request is auto-rejected with a canned reason. Pending requests time
out after ``TRANSACTION_EXPIRY_SECONDS``.

Every status change is a compare-and-set on the current status, so two
cashiers racing on the same request cannot both credit the merchant.
"""
import secrets
import string
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from lus_emi.core.config import settings
from lus_emi.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.aml import AmlAlert
from lus_emi.models.transaction import Priority, Transaction, TransactionStatus, TransactionType
from lus_emi.models.user import Role, User
from lus_emi.schemas.transaction import TransactionCreate
from lus_emi.services import aml, cashier_sessions, notifications, organizations, wallet

logger = get_logger(__name__)

TRANSITIONS: dict[TransactionStatus, set[TransactionStatus]] = {
    TransactionStatus.PENDING: {
        TransactionStatus.COMPLETED,
        TransactionStatus.REJECTED,
        TransactionStatus.EXPIRED,
    },
    TransactionStatus.COMPLETED: set(),
    TransactionStatus.REJECTED: set(),
    TransactionStatus.EXPIRED: set(),
}

AMOUNT_MISMATCH = "Amount Not Same as Merchant's"
VMF_MISMATCH = "VMF Number Not Same as Merchant's"

REQUESTABLE_TYPES = {
    TransactionType.CASH_DIGITIZATION,
    TransactionType.RTP,
    TransactionType.QR_CODE_PAYMENT,
}

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference(db: Session) -> str:
    while True:
        reference = "LUS-" + "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
        if not db.query(Transaction.id).filter(Transaction.reference == reference).first():
            return reference


def get_transaction(db: Session, tx_id: UUID, lock: bool = False) -> Transaction:
    query = db.query(Transaction).filter(Transaction.id == tx_id)
    if lock:
        query = query.with_for_update()
    tx = query.first()
    if not tx:
        raise NotFoundError("Transaction not found")
    return tx


def is_timed_out(tx: Transaction) -> bool:
    return tx.expires_at is not None and tx.expires_at <= utc_now()


def _transition(db: Session, tx: Transaction, target: TransactionStatus, **changes) -> None:
    current = TransactionStatus(tx.status)
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError("transaction", current.value, target.value)

    updated = (
        db.query(Transaction)
        .filter(Transaction.id == tx.id, Transaction.status == current)
        .update({"status": target, "updated_at": utc_now(), **changes}, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        raise ConflictError("Transaction was already processed by someone else")


def expire_stale_transactions(db: Session) -> int:
    """Move every timed-out pending request to expired; caller commits."""
    now = utc_now()
    count = (
        db.query(Transaction)
        .filter(
            Transaction.status == TransactionStatus.PENDING,
            Transaction.expires_at.isnot(None),
            Transaction.expires_at <= now,
        )
        .update(
            {"status": TransactionStatus.EXPIRED, "updated_at": now},
            synchronize_session=False,
        )
    )
    if count:
        logger.info("transactions_expired", count=count)
    return count


def create_transaction(
    db: Session, merchant: User, payload: TransactionCreate
) -> tuple[Transaction, list[AmlAlert]]:
    if merchant.role != Role.MERCHANT:
        raise PermissionDeniedError("Only merchants can request collections")
    if payload.type not in REQUESTABLE_TYPES:
        raise ValidationError(f"Transactions of type '{payload.type.value}' cannot be requested")

    vmf_number = (payload.vmf_number or "").strip() or None
    if payload.type == TransactionType.CASH_DIGITIZATION and not vmf_number:
        raise ValidationError("VMF number is required for cash digitization")

    amount = wallet.to_money(payload.amount)
    organization = organizations.ensure_can_transact(db, merchant)

    expire_stale_transactions(db)

    existing = db.query(Transaction.id).filter(
        Transaction.to_user_id == merchant.id,
        Transaction.status == TransactionStatus.PENDING,
    ).first()
    if existing:
        raise ConflictError(
            "A pending transaction already exists. Please wait for it to be completed "
            "or expired before creating a new one.",
            code="PENDING_TRANSACTION_EXISTS",
        )

    organizations.validate_limits(db, organization, amount)
    wallet.check_collection_limit(db, merchant, amount)

    assigned_cashier_id = None
    if payload.cashier_otp:
        assigned_cashier_id = cashier_sessions.resolve_otp(db, payload.cashier_otp).cashier_id

    tx = Transaction(
        reference=generate_reference(db),
        from_user_id=merchant.id,
        to_user_id=merchant.id,
        assigned_cashier_id=assigned_cashier_id,
        amount=amount,
        type=payload.type,
        status=TransactionStatus.PENDING,
        priority=Priority.MEDIUM,
        vmf_number=vmf_number,
        description=payload.description,
        expires_at=utc_now() + timedelta(seconds=settings.TRANSACTION_EXPIRY_SECONDS),
    )
    db.add(tx)
    db.flush()

    alerts = aml.evaluate_transaction(db, tx)

    db.commit()
    db.refresh(tx)
    logger.info(
        "transaction_requested",
        reference=tx.reference,
        merchant_id=str(merchant.id),
        amount=str(amount),
        type=tx.type.value,
        assigned_cashier_id=str(assigned_cashier_id) if assigned_cashier_id else None,
    )
    return tx, alerts


def mismatch_reason(tx: Transaction, amount: Decimal, vmf_number: str | None) -> str | None:
    if wallet.to_money(amount) != wallet.to_money(tx.amount):
        return AMOUNT_MISMATCH
    if tx.vmf_number and (vmf_number or "").strip() != tx.vmf_number:
        return VMF_MISMATCH
    return None


def _expire_and_fail(db: Session, tx: Transaction):
    _transition(db, tx, TransactionStatus.EXPIRED)
    db.commit()
    db.refresh(tx)
    raise ConflictError("Transaction has expired", status=TransactionStatus.EXPIRED.value)


def verify_transaction(
    db: Session, cashier: User, tx_id: UUID, amount: Decimal, vmf_number: str | None
) -> Transaction:
    if cashier.role != Role.CASHIER:
        raise PermissionDeniedError("Only cashiers can verify transactions")

    tx = get_transaction(db, tx_id, lock=True)
    if tx.assigned_cashier_id and tx.assigned_cashier_id != cashier.id:
        raise PermissionDeniedError("Transaction is assigned to another cashier")

    if TransactionStatus(tx.status) != TransactionStatus.PENDING:
        raise InvalidTransitionError("transaction", TransactionStatus(tx.status).value, "completed")
    if is_timed_out(tx):
        _expire_and_fail(db, tx)

    reason = mismatch_reason(tx, amount, vmf_number)
    if reason:
        _transition(
            db, tx, TransactionStatus.REJECTED,
            rejection_reason=reason,
            processed_by=cashier.id,
        )
        notifications.notify(
            db, tx.to_user_id, "transaction_update",
            "Transaction rejected", f"{tx.reference} was rejected: {reason}",
            "transaction", tx.id,
        )
        db.commit()
        db.refresh(tx)
        logger.info("transaction_rejected", reference=tx.reference, reason=reason, cashier_id=str(cashier.id))
        return tx

    merchant = db.query(User).filter(User.id == tx.to_user_id).first()
    tx_amount = wallet.to_money(tx.amount)
    wallet.check_collection_limit(db, merchant, tx_amount)

    _transition(db, tx, TransactionStatus.COMPLETED, processed_by=cashier.id)
    wallet.record_collection(db, merchant.id, tx_amount)
    wallet.record_transfer(db, cashier.id, tx_amount)
    notifications.notify(
        db, merchant.id, "transaction_update",
        "Transaction completed", f"{tx.reference} for ZMW {tx_amount:,.2f} was completed",
        "transaction", tx.id,
    )
    db.commit()
    db.refresh(tx)
    logger.info(
        "transaction_completed",
        reference=tx.reference,
        amount=str(tx_amount),
        cashier_id=str(cashier.id),
    )
    return tx


def reject_transaction(db: Session, reviewer: User, tx_id: UUID, reason: str) -> Transaction:
    if reviewer.role not in (Role.CASHIER, Role.ADMIN):
        raise PermissionDeniedError("Only cashiers and admins can reject transactions")

    reason = reason.strip()
    if not reason:
        raise ValidationError("Rejection reason is required")

    tx = get_transaction(db, tx_id, lock=True)
    if reviewer.role == Role.CASHIER and tx.assigned_cashier_id and tx.assigned_cashier_id != reviewer.id:
        raise PermissionDeniedError("Transaction is assigned to another cashier")

    if TransactionStatus(tx.status) == TransactionStatus.PENDING and is_timed_out(tx):
        _expire_and_fail(db, tx)

    _transition(
        db, tx, TransactionStatus.REJECTED,
        rejection_reason=reason,
        processed_by=reviewer.id,
    )
    notifications.notify(
        db, tx.to_user_id, "transaction_update",
        "Transaction rejected", f"{tx.reference} was rejected: {reason}",
        "transaction", tx.id,
    )
    db.commit()
    db.refresh(tx)
    logger.info("transaction_rejected", reference=tx.reference, reason=tx.rejection_reason, reviewer_id=str(reviewer.id))
    return tx


def update_priority(db: Session, tx_id: UUID, priority: Priority) -> Transaction:
    tx = get_transaction(db, tx_id)
    tx.priority = priority
    db.commit()
    db.refresh(tx)
    return tx


# --- Listing ---

def list_for_user(db: Session, user: User) -> list[Transaction]:
    now = utc_now()
    query = db.query(Transaction)

    if user.role == Role.MERCHANT:
        query = query.filter(
            Transaction.to_user_id == user.id,
            or_(
                Transaction.status != TransactionStatus.PENDING,
                Transaction.expires_at.is_(None),
                Transaction.expires_at > now,
            ),
        )
    elif user.role == Role.CASHIER:
        query = query.filter(
            or_(Transaction.processed_by == user.id, Transaction.assigned_cashier_id == user.id)
        )
    elif user.role == Role.FINANCE:
        if not user.organization_id:
            return []
        merchant_ids = select(User.id).where(User.organization_id == user.organization_id)
        query = query.filter(Transaction.to_user_id.in_(merchant_ids))

    return query.order_by(Transaction.created_at.desc()).limit(200).all()


def pending_queue(db: Session, user: User) -> list[Transaction]:
    query = db.query(Transaction).filter(
        Transaction.status == TransactionStatus.PENDING,
        or_(Transaction.expires_at.is_(None), Transaction.expires_at > utc_now()),
    )

    if user.role == Role.CASHIER:
        query = query.filter(
            or_(Transaction.assigned_cashier_id.is_(None), Transaction.assigned_cashier_id == user.id)
        )
    elif user.role != Role.ADMIN:
        query = query.filter(Transaction.to_user_id == user.id)

    return query.order_by(Transaction.created_at.desc()).all()


def list_all(db: Session, status: TransactionStatus | None = None) -> list[Transaction]:
    query = db.query(Transaction)
    if status:
        query = query.filter(Transaction.status == status)
    return query.order_by(Transaction.created_at.desc()).all()

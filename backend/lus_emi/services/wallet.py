from datetime import datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from lus_emi.core.config import settings
from lus_emi.core.errors import LimitExceededError, NotFoundError
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.transaction import Transaction, TransactionStatus
from lus_emi.models.user import Role, User
from lus_emi.models.wallet import Wallet

logger = get_logger(__name__)

ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(Decimal("0.01"))


def day_bounds(day=None) -> tuple[datetime, datetime]:
    day = day or utc_now().date()
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def reset_daily_if_needed(db: Session, wallet: Wallet) -> bool:
    """Zero the daily counters when the wallet was last reset before today."""
    today = utc_now().date()
    if wallet.last_reset_date and wallet.last_reset_date >= today:
        return False

    wallet.daily_collected = ZERO
    wallet.daily_transferred = ZERO
    wallet.last_reset_date = today
    db.flush()
    logger.info("wallet_daily_reset", user_id=str(wallet.user_id))
    return True


def get_or_create_wallet(db: Session, user_id: UUID) -> Wallet:
    wallet = db.query(Wallet).filter(Wallet.user_id == user_id).first()
    if wallet:
        reset_daily_if_needed(db, wallet)
        return wallet

    wallet = Wallet(
        user_id=user_id,
        balance=ZERO,
        daily_limit=settings.DEFAULT_DAILY_LIMIT,
        daily_collected=ZERO,
        daily_transferred=ZERO,
        last_reset_date=utc_now().date(),
        is_active=True,
    )
    db.add(wallet)
    db.flush()
    return wallet


def check_collection_limit(db: Session, user: User, amount: Decimal) -> Wallet:
    wallet = get_or_create_wallet(db, user.id)

    if not wallet.is_active:
        raise LimitExceededError("Wallet is inactive")

    remaining = to_money(wallet.daily_limit) - to_money(wallet.daily_collected)
    if amount > remaining:
        raise LimitExceededError(
            f"Daily limit exceeded. Remaining: ZMW {max(remaining, ZERO):,.2f}",
            remaining=float(max(remaining, ZERO)),
        )
    return wallet


def record_collection(db: Session, merchant_id: UUID, amount: Decimal) -> None:
    """Credit a merchant for a completed collection; increments happen in SQL."""
    get_or_create_wallet(db, merchant_id)
    db.query(Wallet).filter(Wallet.user_id == merchant_id).update(
        {
            Wallet.balance: Wallet.balance + amount,
            Wallet.daily_collected: Wallet.daily_collected + amount,
            Wallet.last_transaction_at: utc_now(),
        },
        synchronize_session=False,
    )


def record_transfer(db: Session, cashier_id: UUID, amount: Decimal) -> None:
    get_or_create_wallet(db, cashier_id)
    db.query(Wallet).filter(Wallet.user_id == cashier_id).update(
        {
            Wallet.daily_transferred: Wallet.daily_transferred + amount,
            Wallet.last_transaction_at: utc_now(),
        },
        synchronize_session=False,
    )


def force_daily_reset(db: Session) -> int:
    """Reset every wallet regardless of its last reset date."""
    count = db.query(Wallet).update(
        {
            Wallet.daily_collected: ZERO,
            Wallet.daily_transferred: ZERO,
            Wallet.last_reset_date: utc_now().date(),
        },
        synchronize_session=False,
    )
    db.commit()
    logger.info("wallet_forced_daily_reset", wallets=count)
    return count


def set_daily_limit(db: Session, user_id: UUID, daily_limit: Decimal) -> Wallet:
    if not db.query(User).filter(User.id == user_id).first():
        raise NotFoundError("User not found")

    wallet = get_or_create_wallet(db, user_id)
    wallet.daily_limit = daily_limit
    db.commit()
    db.refresh(wallet)
    return wallet


def today_totals(db: Session, user_id: UUID) -> tuple[Decimal, Decimal]:
    """(completed, completed + live pending) amounts requested by a merchant today."""
    start, end = day_bounds()
    now = utc_now()
    rows = (
        db.query(Transaction.status, Transaction.expires_at, Transaction.amount)
        .filter(
            Transaction.to_user_id == user_id,
            Transaction.created_at >= start,
            Transaction.created_at < end,
            Transaction.status.in_([TransactionStatus.COMPLETED, TransactionStatus.PENDING]),
        )
        .all()
    )

    completed = ZERO
    total = ZERO
    for status, expires_at, amount in rows:
        if status == TransactionStatus.COMPLETED:
            completed += to_money(amount)
            total += to_money(amount)
        elif expires_at is None or expires_at > now:
            total += to_money(amount)
    return completed, total


def todays_collections_by_organization(db: Session, organization_id: UUID) -> Decimal:
    for wallet in merchant_wallets(db, organization_id):
        reset_daily_if_needed(db, wallet)

    total = (
        db.query(func.coalesce(func.sum(Wallet.daily_collected), 0))
        .join(User, Wallet.user_id == User.id)
        .filter(User.organization_id == organization_id, User.role == Role.MERCHANT)
        .scalar()
    )
    return to_money(total)


def merchant_wallets(db: Session, organization_id: UUID) -> list[Wallet]:
    return (
        db.query(Wallet)
        .join(User, Wallet.user_id == User.id)
        .filter(User.organization_id == organization_id, User.role == Role.MERCHANT)
        .order_by(User.email)
        .all()
    )

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, admin_required
from lus_emi.models.transaction import TransactionStatus
from lus_emi.models.user import Role, User
from lus_emi.schemas.transaction import TransactionRead
from lus_emi.schemas.user import AdminUserCreate, UserRead
from lus_emi.schemas.wallet import DailyLimitUpdate, WalletRead
from lus_emi.core.logging import get_logger
from lus_emi.core.security import hash_password
from lus_emi.realtime import manager
from lus_emi.services import organizations, transactions, wallet

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# --- Users ---
@router.post("/users", response_model=UserRead, status_code=201)
def create_user(
    user_in: AdminUserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    if db.query(User).filter(User.email == user_in.email.lower()).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    if user_in.organization_id:
        organizations.get_organization(db, user_in.organization_id)
    elif user_in.role in (Role.MERCHANT, Role.FINANCE):
        raise HTTPException(status_code=400, detail="Merchants and finance officers need an organization")

    user = User(
        email=user_in.email.lower(),
        hashed_password=hash_password(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        role=user_in.role,
        organization_id=user_in.organization_id,
    )
    db.add(user)
    db.flush()
    wallet.get_or_create_wallet(db, user.id)
    db.commit()
    db.refresh(user)
    logger.info("user_created", user_id=str(user.id), role=user.role.value, admin_id=str(admin.id))
    return user


@router.get("/users", response_model=list[UserRead])
def list_users(
    role: Role | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.created_at.desc()).all()


@router.patch("/users/{user_id}/toggle", response_model=UserRead)
def toggle_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    user.is_active = not user.is_active
    db.commit()
    db.refresh(user)
    logger.info("user_toggled", user_id=str(user.id), is_active=user.is_active)
    return user


# --- Transactions ---
@router.get("/transactions", response_model=list[TransactionRead])
def admin_transactions(
    status: TransactionStatus | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return transactions.list_all(db, status)


@router.post("/transactions/expire")
def expire_transactions(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    count = transactions.expire_stale_transactions(db)
    db.commit()
    if count:
        background_tasks.add_task(
            manager.broadcast, "transaction_status_updated", {"status": "expired", "count": count}
        )
    return {"message": f"{count} transaction(s) expired", "expired": count}


# --- Wallets ---
@router.post("/force-daily-reset")
def force_daily_reset(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    count = wallet.force_daily_reset(db)
    return {"message": "Daily limits reset for all wallets", "wallets": count}


@router.patch("/wallets/{user_id}/limit", response_model=WalletRead)
def set_daily_limit(
    user_id: UUID,
    payload: DailyLimitUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return wallet.set_daily_limit(db, user_id, payload.daily_limit)


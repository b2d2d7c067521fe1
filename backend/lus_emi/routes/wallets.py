from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, get_current_user, require_roles
from lus_emi.models.user import Role, User
from lus_emi.schemas.wallet import MerchantWalletRead, WalletRead, WalletSummary
from lus_emi.services import wallet

router = APIRouter(prefix="/api", tags=["Wallet"])


@router.get("/wallet", response_model=WalletSummary)
def get_wallet(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_wallet = wallet.get_or_create_wallet(db, current_user.id)
    db.commit()
    db.refresh(user_wallet)

    today_completed, today_total = wallet.today_totals(db, current_user.id)
    if current_user.role == Role.FINANCE and current_user.organization_id:
        todays_collections = wallet.todays_collections_by_organization(db, current_user.organization_id)
        db.commit()
    else:
        todays_collections = wallet.to_money(user_wallet.daily_collected)

    summary = WalletRead.model_validate(user_wallet).model_dump()
    summary.update(
        today_completed=float(today_completed),
        today_total=float(today_total),
        todays_collections=float(todays_collections),
        user_role=current_user.role.value,
    )
    return summary


@router.post("/wallet/reset-daily", response_model=WalletRead)
def reset_daily(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_wallet = wallet.get_or_create_wallet(db, current_user.id)
    db.commit()
    db.refresh(user_wallet)
    return user_wallet


@router.get("/merchant-wallets", response_model=list[MerchantWalletRead])
def merchant_wallets(
    organization_id: UUID | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.FINANCE, Role.ADMIN)),
):
    if current_user.role == Role.FINANCE:
        organization_id = current_user.organization_id
    if not organization_id:
        raise HTTPException(status_code=400, detail="Organization is required")

    wallets = wallet.merchant_wallets(db, organization_id)
    for merchant_wallet in wallets:
        wallet.reset_daily_if_needed(db, merchant_wallet)
    db.commit()

    return [
        {
            "user_id": w.user_id,
            "email": w.user.email,
            "display_name": w.user.display_name,
            "balance": float(w.balance),
            "daily_collected": float(w.daily_collected),
            "daily_limit": float(w.daily_limit),
        }
        for w in wallets
    ]

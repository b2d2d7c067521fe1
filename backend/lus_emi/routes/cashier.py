from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, require_roles
from lus_emi.models.user import Role, User
from lus_emi.schemas.cashier import CashierSessionRead
from lus_emi.services import cashier_sessions

router = APIRouter(prefix="/api/cashier", tags=["Cashier"])


@router.post("/sessions", response_model=CashierSessionRead, status_code=201)
def open_session(
    db: Session = Depends(get_db),
    cashier: User = Depends(require_roles(Role.CASHIER)),
):
    return cashier_sessions.open_session(db, cashier)


@router.get("/sessions/current", response_model=CashierSessionRead)
def current_session(
    db: Session = Depends(get_db),
    cashier: User = Depends(require_roles(Role.CASHIER)),
):
    session = cashier_sessions.current_session(db, cashier)
    if not session:
        raise HTTPException(status_code=404, detail="No active cashier session")
    return session

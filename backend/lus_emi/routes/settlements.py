from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, get_current_user, admin_required, require_roles
from lus_emi.models.user import Role, User
from lus_emi.realtime import manager
from lus_emi.schemas.settlement import SettlementCreate, SettlementHold, SettlementRead, SettlementReject
from lus_emi.schemas.wallet import SettlementBreakdown
from lus_emi.services import settlements

router = APIRouter(prefix="/api", tags=["Settlements"])


def _broadcast_status(background_tasks: BackgroundTasks, request) -> None:
    background_tasks.add_task(
        manager.broadcast,
        "settlement_status_updated",
        SettlementRead.model_validate(request).model_dump(mode="json"),
    )


@router.post("/settlement-requests", response_model=SettlementRead, status_code=201)
def create_settlement_request(
    payload: SettlementCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    request = settlements.create_request(db, current_user, payload)
    _broadcast_status(background_tasks, request)
    return request


@router.get("/settlement-requests", response_model=list[SettlementRead])
def list_settlement_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.FINANCE, Role.ADMIN)),
):
    return settlements.list_requests(db, current_user)


@router.get("/settlement-breakdown", response_model=SettlementBreakdown)
def settlement_breakdown(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.FINANCE)),
):
    if not current_user.organization_id:
        raise HTTPException(status_code=400, detail="Finance officer has no organization")
    breakdown = settlements.breakdown(db, current_user.organization_id)
    db.commit()
    return breakdown


# --- Admin review ---
@router.patch("/admin/settlement-requests/{request_id}/approve", response_model=SettlementRead)
def approve_settlement(
    request_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    request = settlements.approve(db, admin, request_id)
    _broadcast_status(background_tasks, request)
    return request


@router.patch("/admin/settlement-requests/{request_id}/hold", response_model=SettlementRead)
def hold_settlement(
    request_id: UUID,
    payload: SettlementHold,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    request = settlements.hold(db, admin, request_id, payload.hold_reason, payload.reason_comment)
    _broadcast_status(background_tasks, request)
    return request


@router.patch("/admin/settlement-requests/{request_id}/reject", response_model=SettlementRead)
def reject_settlement(
    request_id: UUID,
    payload: SettlementReject,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    request = settlements.reject(db, admin, request_id, payload.reject_reason, payload.reason_comment)
    _broadcast_status(background_tasks, request)
    return request


@router.patch("/admin/settlement-requests/{request_id}/complete", response_model=SettlementRead)
def complete_settlement(
    request_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    request = settlements.complete(db, admin, request_id)
    _broadcast_status(background_tasks, request)
    return request

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, get_current_user, admin_required
from lus_emi.models.user import User
from lus_emi.realtime import manager
from lus_emi.schemas.aml import AmlAlertRead
from lus_emi.schemas.transaction import (
    PriorityUpdate,
    TransactionCreate,
    TransactionRead,
    TransactionReject,
    TransactionVerify,
)
from lus_emi.services import transactions

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


def _as_json(tx) -> dict:
    return TransactionRead.model_validate(tx).model_dump(mode="json")


@router.post("", response_model=TransactionRead, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tx, alerts = transactions.create_transaction(db, current_user, payload)

    background_tasks.add_task(manager.broadcast, "transaction_created", _as_json(tx))
    for alert in alerts:
        background_tasks.add_task(
            manager.broadcast,
            "aml_alert_created",
            AmlAlertRead.model_validate(alert).model_dump(mode="json"),
        )
    return tx


@router.get("", response_model=list[TransactionRead])
def my_transactions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return transactions.list_for_user(db, current_user)


@router.get("/pending", response_model=list[TransactionRead])
def pending_transactions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return transactions.pending_queue(db, current_user)


@router.post("/{tx_id}/verify", response_model=TransactionRead)
def verify_transaction(
    tx_id: UUID,
    payload: TransactionVerify,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tx = transactions.verify_transaction(db, current_user, tx_id, payload.amount, payload.vmf_number)
    background_tasks.add_task(manager.broadcast, "transaction_status_updated", _as_json(tx))
    return tx


@router.post("/{tx_id}/reject", response_model=TransactionRead)
def reject_transaction(
    tx_id: UUID,
    payload: TransactionReject,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tx = transactions.reject_transaction(db, current_user, tx_id, payload.reason)
    background_tasks.add_task(manager.broadcast, "transaction_status_updated", _as_json(tx))
    return tx


@router.patch("/{tx_id}/priority", response_model=TransactionRead)
def update_priority(
    tx_id: UUID,
    payload: PriorityUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return transactions.update_priority(db, tx_id, payload.priority)

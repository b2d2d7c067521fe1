from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, admin_required, require_roles
from lus_emi.models.aml import AmlAlertStatus
from lus_emi.models.user import Role, User
from lus_emi.schemas.aml import (
    AmlAlertRead,
    AmlAlertReview,
    AmlConfigurationCreate,
    AmlConfigurationRead,
    AmlConfigurationUpdate,
)
from lus_emi.services import aml

router = APIRouter(prefix="/api/aml", tags=["AML"])

reviewer_required = require_roles(Role.FINANCE, Role.ADMIN)


# --- Configurations ---
@router.get("/configurations", response_model=list[AmlConfigurationRead])
def list_configurations(
    db: Session = Depends(get_db),
    current_user: User = Depends(reviewer_required),
):
    return aml.list_configurations(db)


@router.post("/configurations", response_model=AmlConfigurationRead, status_code=201)
def create_configuration(
    payload: AmlConfigurationCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return aml.create_configuration(db, admin, payload)


@router.patch("/configurations/{config_id}", response_model=AmlConfigurationRead)
def update_configuration(
    config_id: UUID,
    payload: AmlConfigurationUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return aml.update_configuration(db, config_id, payload)


@router.delete("/configurations/{config_id}")
def delete_configuration(
    config_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    aml.delete_configuration(db, config_id)
    return {"message": "AML configuration deleted"}


# --- Alerts ---
@router.get("/alerts", response_model=list[AmlAlertRead])
def list_alerts(
    status: AmlAlertStatus | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(reviewer_required),
):
    return aml.list_alerts(db, status)


@router.get("/alerts/pending", response_model=list[AmlAlertRead])
def pending_alerts(
    db: Session = Depends(get_db),
    current_user: User = Depends(reviewer_required),
):
    return aml.pending_alerts(db)


@router.patch("/alerts/{alert_id}/review", response_model=AmlAlertRead)
def review_alert(
    alert_id: UUID,
    payload: AmlAlertReview,
    db: Session = Depends(get_db),
    current_user: User = Depends(reviewer_required),
):
    return aml.review_alert(db, current_user, alert_id, payload.status, payload.review_notes)

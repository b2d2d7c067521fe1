from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, get_current_user, admin_required
from lus_emi.models.organization import KycStatus, Organization
from lus_emi.models.user import Role, User
from lus_emi.schemas.organization import KycUpdate, LimitsUpdate, OrganizationCreate, OrganizationRead
from lus_emi.services import organizations

router = APIRouter(prefix="/api", tags=["Organizations"])


@router.post("/admin/organizations", response_model=OrganizationRead, status_code=201)
def create_organization(
    payload: OrganizationCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return organizations.create_organization(db, payload)


@router.get("/admin/organizations", response_model=list[OrganizationRead])
def list_organizations(
    kyc_status: KycStatus | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return organizations.list_organizations(db, kyc_status)


@router.get("/admin/organizations/{organization_id}", response_model=OrganizationRead)
def get_organization(
    organization_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return organizations.get_organization(db, organization_id)


@router.patch("/admin/organizations/{organization_id}/kyc", response_model=OrganizationRead)
def update_kyc(
    organization_id: UUID,
    payload: KycUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return organizations.update_kyc_status(db, organization_id, payload.kyc_status)


@router.patch("/admin/organizations/{organization_id}/toggle", response_model=OrganizationRead)
def toggle_organization(
    organization_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return organizations.toggle_active(db, organization_id)


@router.patch("/admin/organizations/{organization_id}/limits", response_model=OrganizationRead)
def update_limits(
    organization_id: UUID,
    payload: LimitsUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required),
):
    return organizations.update_limits(db, organization_id, payload)


@router.get("/organizations", response_model=list[OrganizationRead])
def my_organizations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role == Role.ADMIN:
        return organizations.list_organizations(db)
    if not current_user.organization_id:
        return []
    return db.query(Organization).filter(Organization.id == current_user.organization_id).all()

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from lus_emi.core.errors import (
    InvalidTransitionError,
    LimitExceededError,
    NotFoundError,
    PermissionDeniedError,
)
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.organization import KycStatus, Organization
from lus_emi.models.transaction import Transaction, TransactionStatus
from lus_emi.models.user import User
from lus_emi.schemas.organization import LimitsUpdate, OrganizationCreate
from lus_emi.services.wallet import day_bounds, to_money

logger = get_logger(__name__)

KYC_TRANSITIONS: dict[KycStatus, set[KycStatus]] = {
    KycStatus.PENDING: {KycStatus.IN_REVIEW},
    KycStatus.IN_REVIEW: {KycStatus.VERIFIED, KycStatus.REJECTED},
    KycStatus.REJECTED: {KycStatus.IN_REVIEW},
    KycStatus.VERIFIED: set(),
}

# statuses that count against organization volume limits
LIVE_STATUSES = (TransactionStatus.PENDING, TransactionStatus.COMPLETED)


def create_organization(db: Session, payload: OrganizationCreate) -> Organization:
    organization = Organization(**payload.model_dump())
    db.add(organization)
    db.commit()
    db.refresh(organization)
    logger.info("organization_created", organization_id=str(organization.id), name=organization.name)
    return organization


def get_organization(db: Session, organization_id: UUID) -> Organization:
    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if not organization:
        raise NotFoundError("Organization not found")
    return organization


def list_organizations(db: Session, kyc_status: KycStatus | None = None) -> list[Organization]:
    query = db.query(Organization)
    if kyc_status:
        query = query.filter(Organization.kyc_status == kyc_status)
    return query.order_by(Organization.created_at.desc()).all()


def update_kyc_status(db: Session, organization_id: UUID, target: KycStatus) -> Organization:
    organization = get_organization(db, organization_id)
    current = KycStatus(organization.kyc_status)

    if target not in KYC_TRANSITIONS[current]:
        raise InvalidTransitionError("organization KYC", current.value, target.value)

    organization.kyc_status = target
    db.commit()
    db.refresh(organization)
    logger.info(
        "organization_kyc_changed",
        organization_id=str(organization.id),
        from_status=current.value,
        to_status=target.value,
    )
    return organization


def toggle_active(db: Session, organization_id: UUID) -> Organization:
    organization = get_organization(db, organization_id)
    organization.is_active = not organization.is_active
    db.commit()
    db.refresh(organization)
    return organization


def update_limits(db: Session, organization_id: UUID, payload: LimitsUpdate) -> Organization:
    organization = get_organization(db, organization_id)
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(organization, field, value)
    db.commit()
    db.refresh(organization)
    return organization


def ensure_can_transact(db: Session, user: User) -> Organization:
    """Users inherit their ability to move money from their organization."""
    if not user.organization_id:
        raise PermissionDeniedError("User must belong to an organization to operate")

    organization = get_organization(db, user.organization_id)
    if not organization.is_active:
        raise PermissionDeniedError("Organization is suspended. All user operations are disabled.")
    if organization.kyc_status != KycStatus.VERIFIED:
        raise PermissionDeniedError(
            f"Organization KYC status is {KycStatus(organization.kyc_status).value}. "
            "Financial operations require verified KYC."
        )
    return organization


def organization_volume(db: Session, organization_id: UUID, start: datetime, end: datetime) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Transaction.amount), 0))
        .join(User, Transaction.to_user_id == User.id)
        .filter(
            User.organization_id == organization_id,
            Transaction.status.in_(LIVE_STATUSES),
            Transaction.created_at >= start,
            Transaction.created_at < end,
        )
        .scalar()
    )
    return to_money(total)


def validate_limits(db: Session, organization: Organization, amount: Decimal) -> None:
    single_limit = to_money(organization.single_transaction_limit)
    if amount > single_limit:
        raise LimitExceededError(
            f"Transaction amount ZMW {amount:,.2f} exceeds organization single transaction "
            f"limit of ZMW {single_limit:,.2f}"
        )

    start, end = day_bounds()
    daily_used = organization_volume(db, organization.id, start, end)
    daily_limit = to_money(organization.daily_transaction_limit)
    if daily_used + amount > daily_limit:
        raise LimitExceededError(
            "Transaction would exceed organization daily limit",
            daily_used=float(daily_used),
            daily_limit=float(daily_limit),
        )

    today = utc_now().date()
    month_start = datetime(today.year, today.month, 1)
    monthly_used = organization_volume(db, organization.id, month_start, end)
    monthly_limit = to_money(organization.monthly_transaction_limit)
    if monthly_used + amount > monthly_limit:
        raise LimitExceededError(
            "Transaction would exceed organization monthly limit",
            monthly_used=float(monthly_used),
            monthly_limit=float(monthly_limit),
        )

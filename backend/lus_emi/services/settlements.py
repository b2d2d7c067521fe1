"""
Settlement requests: a finance officer asks for collected funds to be moved
to the organization's bank account, an admin reviews it (maker-checker).
"""
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from lus_emi.core.config import settings
from lus_emi.core.errors import (
    ConflictError,
    InvalidTransitionError,
    LimitExceededError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.settlement import (
    HoldReason,
    RejectReason,
    SettlementRequest,
    SettlementStatus,
    REASON_COMMENT_MAX_LENGTH,
)
from lus_emi.models.transaction import Transaction, TransactionStatus, TransactionType
from lus_emi.models.user import Role, User
from lus_emi.schemas.settlement import SettlementCreate
from lus_emi.services import notifications, wallet
from lus_emi.services.transactions import generate_reference

logger = get_logger(__name__)

TRANSITIONS: dict[SettlementStatus, set[SettlementStatus]] = {
    SettlementStatus.PENDING: {SettlementStatus.APPROVED, SettlementStatus.HOLD, SettlementStatus.REJECTED},
    SettlementStatus.HOLD: {SettlementStatus.APPROVED, SettlementStatus.REJECTED},
    SettlementStatus.APPROVED: {SettlementStatus.COMPLETED},
    SettlementStatus.REJECTED: set(),
    SettlementStatus.COMPLETED: set(),
}

# requested but not yet paid out; these reduce the available capacity
OUTSTANDING_STATUSES = (SettlementStatus.PENDING, SettlementStatus.HOLD, SettlementStatus.APPROVED)

STATUS_TITLES = {
    SettlementStatus.APPROVED: "Settlement approved",
    SettlementStatus.HOLD: "Settlement on hold",
    SettlementStatus.REJECTED: "Settlement rejected",
    SettlementStatus.COMPLETED: "Settlement completed",
}


def outstanding_total(db: Session, organization_id: UUID) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(SettlementRequest.amount), 0))
        .filter(
            SettlementRequest.organization_id == organization_id,
            SettlementRequest.status.in_(OUTSTANDING_STATUSES),
        )
        .scalar()
    )
    return wallet.to_money(total)


def capacity(db: Session, organization_id: UUID) -> tuple[Decimal, Decimal, Decimal]:
    """(today's collections, outstanding settlements, available capacity)"""
    collections = wallet.todays_collections_by_organization(db, organization_id)
    outstanding = outstanding_total(db, organization_id)
    return collections, outstanding, max(wallet.ZERO, collections - outstanding)


def breakdown(db: Session, organization_id: UUID) -> dict:
    collections, outstanding, available = capacity(db, organization_id)
    counts = dict(
        db.query(SettlementRequest.status, func.count(SettlementRequest.id))
        .filter(SettlementRequest.organization_id == organization_id)
        .group_by(SettlementRequest.status)
        .all()
    )
    return {
        "todays_collections": float(collections),
        "pending_total": float(outstanding),
        "settlement_capacity": float(available),
        "by_status": {status.value: counts.get(status, 0) for status in SettlementStatus},
    }


def create_request(db: Session, user: User, payload: SettlementCreate) -> SettlementRequest:
    if user.role != Role.FINANCE or not user.organization_id:
        raise PermissionDeniedError(
            "Only finance officers with organizations can create settlement requests"
        )

    amount = wallet.to_money(payload.amount)
    if settings.ENFORCE_SETTLEMENT_CAPACITY:
        collections, outstanding, available = capacity(db, user.organization_id)
        if amount > available:
            raise LimitExceededError(
                f"Insufficient settlement capacity. Available: ZMW {available:,.2f}, "
                f"Requested: ZMW {amount:,.2f}",
                todays_collections=float(collections),
                pending_total=float(outstanding),
                settlement_capacity=float(available),
                request_amount=float(amount),
            )

    request = SettlementRequest(
        organization_id=user.organization_id,
        user_id=user.id,
        amount=amount,
        bank_name=payload.bank_name.strip(),
        account_number=payload.account_number.strip(),
        status=SettlementStatus.PENDING,
        priority=payload.priority,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    logger.info(
        "settlement_requested",
        settlement_id=str(request.id),
        organization_id=str(request.organization_id),
        amount=str(amount),
    )
    return request


def list_requests(db: Session, user: User) -> list[SettlementRequest]:
    query = db.query(SettlementRequest)
    if user.role != Role.ADMIN:
        if not user.organization_id:
            return []
        query = query.filter(SettlementRequest.organization_id == user.organization_id)
    return query.order_by(SettlementRequest.created_at.desc()).all()


def get_request(db: Session, request_id: UUID) -> SettlementRequest:
    request = (
        db.query(SettlementRequest)
        .filter(SettlementRequest.id == request_id)
        .with_for_update()
        .first()
    )
    if not request:
        raise NotFoundError("Settlement request not found")
    return request


def _check_comment(reason, comment: str | None) -> str | None:
    comment = (comment or "").strip() or None
    if reason.value == "other" and not comment:
        raise ValidationError("Comment is required when selecting 'other' reason")
    if comment and len(comment) > REASON_COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment must be {REASON_COMMENT_MAX_LENGTH} characters or less")
    return comment


def _transition(
    db: Session, reviewer: User, request_id: UUID, target: SettlementStatus, **changes
) -> SettlementRequest:
    if reviewer.role != Role.ADMIN:
        raise PermissionDeniedError("Only admin users can review settlements")

    request = get_request(db, request_id)
    current = SettlementStatus(request.status)
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError("settlement request", current.value, target.value)

    now = utc_now()
    updated = (
        db.query(SettlementRequest)
        .filter(SettlementRequest.id == request.id, SettlementRequest.status == current)
        .update(
            {"status": target, "reviewed_by": reviewer.id, "reviewed_at": now, "updated_at": now, **changes},
            synchronize_session=False,
        )
    )
    if updated != 1:
        db.rollback()
        raise ConflictError("Settlement request was already reviewed by someone else")

    if target == SettlementStatus.COMPLETED:
        # the payout is recorded as a completed settlement transaction
        db.add(Transaction(
            reference=generate_reference(db),
            from_user_id=request.user_id,
            to_user_id=request.user_id,
            processed_by=reviewer.id,
            amount=request.amount,
            type=TransactionType.SETTLEMENT,
            status=TransactionStatus.COMPLETED,
            description=f"Settlement to {request.bank_name} {request.account_number}",
        ))

    message = f"Settlement of ZMW {wallet.to_money(request.amount):,.2f} is now {target.value}"
    if changes.get("reason_comment"):
        message += f": {changes['reason_comment']}"
    notifications.notify(
        db, request.user_id, "settlement_status_change",
        STATUS_TITLES[target], message,
        "settlement_request", request.id,
    )

    db.commit()
    db.refresh(request)
    logger.info(
        "settlement_status_changed",
        settlement_id=str(request.id),
        from_status=current.value,
        to_status=target.value,
        reviewer_id=str(reviewer.id),
    )
    return request


def approve(db: Session, reviewer: User, request_id: UUID) -> SettlementRequest:
    return _transition(db, reviewer, request_id, SettlementStatus.APPROVED)


def hold(db: Session, reviewer: User, request_id: UUID, reason: HoldReason, comment: str | None = None) -> SettlementRequest:
    comment = _check_comment(reason, comment)
    return _transition(
        db, reviewer, request_id, SettlementStatus.HOLD,
        hold_reason=reason, reason_comment=comment,
    )


def reject(db: Session, reviewer: User, request_id: UUID, reason: RejectReason, comment: str | None = None) -> SettlementRequest:
    comment = _check_comment(reason, comment)
    return _transition(
        db, reviewer, request_id, SettlementStatus.REJECTED,
        reject_reason=reason, reason_comment=comment,
    )


def complete(db: Session, reviewer: User, request_id: UUID) -> SettlementRequest:
    return _transition(db, reviewer, request_id, SettlementStatus.COMPLETED)

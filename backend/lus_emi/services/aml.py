from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from lus_emi.core.errors import InvalidTransitionError, NotFoundError
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.aml import AmlAlert, AmlAlertStatus, AmlConfigType, AmlConfiguration
from lus_emi.models.transaction import Transaction, TransactionStatus
from lus_emi.models.user import User
from lus_emi.schemas.aml import AmlConfigurationCreate, AmlConfigurationUpdate
from lus_emi.services.wallet import day_bounds, to_money

logger = get_logger(__name__)

REVIEW_TRANSITIONS: dict[AmlAlertStatus, set[AmlAlertStatus]] = {
    AmlAlertStatus.PENDING: {AmlAlertStatus.UNDER_REVIEW, AmlAlertStatus.CLEARED, AmlAlertStatus.ESCALATED},
    AmlAlertStatus.UNDER_REVIEW: {AmlAlertStatus.CLEARED, AmlAlertStatus.ESCALATED},
    AmlAlertStatus.CLEARED: set(),
    AmlAlertStatus.ESCALATED: set(),
}

# rejected and expired requests never moved money
COUNTED_STATUSES = (TransactionStatus.PENDING, TransactionStatus.COMPLETED)

LABELS = {
    AmlConfigType.SINGLE_TRANSACTION: "Single transaction",
    AmlConfigType.DAILY_TOTAL: "Daily total",
    AmlConfigType.WEEKLY_VOLUME: "Weekly volume",
}


# --- Configuration ---

def list_configurations(db: Session) -> list[AmlConfiguration]:
    return db.query(AmlConfiguration).order_by(AmlConfiguration.created_at.desc()).all()


def create_configuration(db: Session, admin: User, payload: AmlConfigurationCreate) -> AmlConfiguration:
    config = AmlConfiguration(
        config_type=payload.config_type,
        threshold_amount=payload.threshold_amount,
        description=payload.description,
        is_active=True,
        created_by=admin.id,
    )
    db.add(config)
    db.commit()
    db.refresh(config)
    logger.info(
        "aml_configuration_created",
        config_type=config.config_type.value,
        threshold=str(config.threshold_amount),
    )
    return config


def _get_configuration(db: Session, config_id: UUID) -> AmlConfiguration:
    config = db.query(AmlConfiguration).filter(AmlConfiguration.id == config_id).first()
    if not config:
        raise NotFoundError("AML configuration not found")
    return config


def update_configuration(db: Session, config_id: UUID, payload: AmlConfigurationUpdate) -> AmlConfiguration:
    config = _get_configuration(db, config_id)
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(config, field, value)
    db.commit()
    db.refresh(config)
    return config


def delete_configuration(db: Session, config_id: UUID) -> None:
    config = _get_configuration(db, config_id)
    db.delete(config)
    db.commit()


# --- Evaluation ---

def risk_score(trigger: Decimal, threshold: Decimal) -> int:
    """50 at the threshold, scaling linearly, capped at 100."""
    score = (Decimal(50) * trigger / threshold).to_integral_value(rounding=ROUND_HALF_UP)
    return min(100, int(score))


def _merchant_volume(db: Session, user_id: UUID, since) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Transaction.amount), 0))
        .filter(
            Transaction.to_user_id == user_id,
            Transaction.status.in_(COUNTED_STATUSES),
            Transaction.created_at >= since,
        )
        .scalar()
    )
    return to_money(total)


def evaluate_transaction(db: Session, tx: Transaction) -> list[AmlAlert]:
    """Compare a freshly flushed transaction against every active threshold."""
    configs = db.query(AmlConfiguration).filter(AmlConfiguration.is_active.is_(True)).all()
    alerts = []

    for config in configs:
        config_type = AmlConfigType(config.config_type)
        threshold = to_money(config.threshold_amount)

        if config_type == AmlConfigType.SINGLE_TRANSACTION:
            trigger = to_money(tx.amount)
        elif config_type == AmlConfigType.DAILY_TOTAL:
            start, _ = day_bounds()
            trigger = _merchant_volume(db, tx.to_user_id, start)
        else:
            trigger = _merchant_volume(db, tx.to_user_id, utc_now() - timedelta(days=7))

        if trigger < threshold:
            continue

        alert = AmlAlert(
            user_id=tx.to_user_id,
            transaction_id=tx.id,
            alert_type=config_type,
            risk_score=risk_score(trigger, threshold),
            trigger_amount=trigger,
            threshold_amount=threshold,
            description=(
                f"{LABELS[config_type]} of ZMW {trigger:,.2f} reached the "
                f"threshold of ZMW {threshold:,.2f} ({tx.reference})"
            ),
            status=AmlAlertStatus.PENDING,
        )
        db.add(alert)
        alerts.append(alert)
        logger.warning(
            "aml_alert_raised",
            alert_type=config_type.value,
            reference=tx.reference,
            trigger=str(trigger),
            threshold=str(threshold),
            risk_score=alert.risk_score,
        )

    if alerts:
        db.flush()
    return alerts


# --- Review ---

def list_alerts(db: Session, status: AmlAlertStatus | None = None) -> list[AmlAlert]:
    query = db.query(AmlAlert)
    if status:
        query = query.filter(AmlAlert.status == status)
    return query.order_by(AmlAlert.created_at.desc()).all()


def pending_alerts(db: Session) -> list[AmlAlert]:
    return (
        db.query(AmlAlert)
        .filter(AmlAlert.status.in_([AmlAlertStatus.PENDING, AmlAlertStatus.UNDER_REVIEW]))
        .order_by(AmlAlert.risk_score.desc(), AmlAlert.created_at.desc())
        .all()
    )


def review_alert(
    db: Session,
    reviewer: User,
    alert_id: UUID,
    target: AmlAlertStatus,
    review_notes: str | None = None,
) -> AmlAlert:
    alert = db.query(AmlAlert).filter(AmlAlert.id == alert_id).first()
    if not alert:
        raise NotFoundError("AML alert not found")

    current = AmlAlertStatus(alert.status)
    if target not in REVIEW_TRANSITIONS[current]:
        raise InvalidTransitionError("AML alert", current.value, target.value)

    alert.status = target
    alert.reviewed_by = reviewer.id
    alert.reviewed_at = utc_now()
    alert.review_notes = review_notes
    db.commit()
    db.refresh(alert)
    logger.info("aml_alert_reviewed", alert_id=str(alert.id), status=target.value, reviewer=str(reviewer.id))
    return alert

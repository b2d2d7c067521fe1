"""
Regulatory report snapshots over transactions and AML alerts.

Each report covers one period: a day (``2026-10-16``), an ISO week
(``2026-W42``) or a calendar month (``2026-10``). The figures are computed
once at generation time and stored as JSON.
"""
import re
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from lus_emi.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now
from lus_emi.models.aml import HIGH_RISK_SCORE, AmlAlert, AmlAlertStatus, AmlConfigType, AmlConfiguration
from lus_emi.models.compliance import ComplianceReport, ReportStatus, ReportType
from lus_emi.models.transaction import Transaction, TransactionStatus
from lus_emi.models.user import User
from lus_emi.services.wallet import ZERO, to_money

logger = get_logger(__name__)

STATUS_TRANSITIONS: dict[ReportStatus, set[ReportStatus]] = {
    ReportStatus.GENERATED: {ReportStatus.SUBMITTED},
    ReportStatus.SUBMITTED: {ReportStatus.ACKNOWLEDGED},
    ReportStatus.ACKNOWLEDGED: set(),
}

DEFAULT_SINGLE_THRESHOLD = Decimal("50000.00")
NEAR_THRESHOLD_RATIO = Decimal("0.8")
NEAR_THRESHOLD_MIN_COUNT = 3

_WEEK_RE = re.compile(r"^(\d{4})-W(\d{2})$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def period_bounds(report_type: ReportType, period: str) -> tuple[datetime, datetime]:
    """[start, end) of a report period; raises ValidationError on a bad period."""
    try:
        if report_type == ReportType.DAILY_SUMMARY:
            start_day = date.fromisoformat(period)
            end_day = start_day + timedelta(days=1)
        elif report_type == ReportType.WEEKLY_COMPLIANCE:
            match = _WEEK_RE.match(period)
            if not match:
                raise ValueError(period)
            start_day = date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
            end_day = start_day + timedelta(days=7)
        else:
            match = _MONTH_RE.match(period)
            if not match:
                raise ValueError(period)
            year, month = int(match.group(1)), int(match.group(2))
            start_day = date(year, month, 1)
            end_day = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    except ValueError:
        formats = {
            ReportType.DAILY_SUMMARY: "YYYY-MM-DD",
            ReportType.WEEKLY_COMPLIANCE: "YYYY-Www",
            ReportType.MONTHLY_REGULATORY: "YYYY-MM",
        }
        raise ValidationError(f"Invalid period '{period}'. Expected {formats[report_type]}")

    return datetime.combine(start_day, time.min), datetime.combine(end_day, time.min)


def _transactions(db: Session, start: datetime, end: datetime) -> list[Transaction]:
    return (
        db.query(Transaction)
        .filter(Transaction.created_at >= start, Transaction.created_at < end)
        .all()
    )


def _alerts(db: Session, start: datetime, end: datetime) -> list[AmlAlert]:
    return (
        db.query(AmlAlert)
        .filter(AmlAlert.created_at >= start, AmlAlert.created_at < end)
        .all()
    )


def _single_threshold(db: Session) -> Decimal:
    config = (
        db.query(AmlConfiguration)
        .filter(
            AmlConfiguration.config_type == AmlConfigType.SINGLE_TRANSACTION,
            AmlConfiguration.is_active.is_(True),
        )
        .order_by(AmlConfiguration.created_at.desc())
        .first()
    )
    return to_money(config.threshold_amount) if config else DEFAULT_SINGLE_THRESHOLD


def _total(transactions) -> float:
    return float(sum((to_money(tx.amount) for tx in transactions), ZERO))


def daily_summary(db: Session, start: datetime, end: datetime) -> dict:
    transactions = _transactions(db, start, end)
    alerts = _alerts(db, start, end)
    completed = [tx for tx in transactions if tx.status == TransactionStatus.COMPLETED]
    return {
        "transactions": {
            "count": len(transactions),
            "totalAmount": _total(transactions),
            "completedAmount": _total(completed),
        },
        "alerts": {
            "total": len(alerts),
            "highRisk": sum(1 for alert in alerts if alert.risk_score >= HIGH_RISK_SCORE),
        },
    }


def weekly_compliance(db: Session, start: datetime, end: datetime) -> dict:
    transactions = _transactions(db, start, end)
    alerts = _alerts(db, start, end)

    by_type = defaultdict(list)
    for tx in transactions:
        by_type[tx.type.value].append(tx)

    # structuring: repeated amounts just under the single-transaction threshold
    threshold = _single_threshold(db)
    floor = threshold * NEAR_THRESHOLD_RATIO
    near_threshold = defaultdict(int)
    for tx in transactions:
        if floor <= to_money(tx.amount) < threshold:
            near_threshold[str(tx.to_user_id)] += 1

    return {
        "highRiskAlerts": sum(1 for alert in alerts if alert.risk_score >= HIGH_RISK_SCORE),
        "transactionBreakdown": [
            {"type": tx_type, "count": len(rows), "totalAmount": _total(rows)}
            for tx_type, rows in sorted(by_type.items())
        ],
        "suspiciousPatterns": [
            {"userId": user_id, "nearThresholdCount": count}
            for user_id, count in sorted(near_threshold.items())
            if count >= NEAR_THRESHOLD_MIN_COUNT
        ],
    }


def monthly_regulatory(db: Session, start: datetime, end: datetime) -> dict:
    transactions = _transactions(db, start, end)
    alerts = _alerts(db, start, end)
    cleared = sum(1 for alert in alerts if alert.status == AmlAlertStatus.CLEARED)
    escalated = sum(1 for alert in alerts if alert.status == AmlAlertStatus.ESCALATED)
    return {
        "transactionVolume": {
            "count": len(transactions),
            "totalAmount": _total(transactions),
            "uniqueUsers": len({tx.to_user_id for tx in transactions}),
        },
        "amlCompliance": {
            "alertsGenerated": len(alerts),
            "alertsCleared": cleared,
            "alertsEscalated": escalated,
        },
        "regulatoryStatus": "attention_required" if escalated else "compliant",
    }


BUILDERS = {
    ReportType.DAILY_SUMMARY: daily_summary,
    ReportType.WEEKLY_COMPLIANCE: weekly_compliance,
    ReportType.MONTHLY_REGULATORY: monthly_regulatory,
}


def generate_report(db: Session, user: User, report_type: ReportType, period: str) -> ComplianceReport:
    start, end = period_bounds(report_type, period)
    report = ComplianceReport(
        report_type=report_type,
        period=period,
        report_data=BUILDERS[report_type](db, start, end),
        status=ReportStatus.GENERATED,
        generated_by=user.id,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info("compliance_report_generated", report_type=report_type.value, period=period)
    return report


def list_reports(db: Session) -> list[ComplianceReport]:
    return db.query(ComplianceReport).order_by(ComplianceReport.created_at.desc()).all()


def update_status(db: Session, report_id: UUID, target: ReportStatus) -> ComplianceReport:
    report = db.query(ComplianceReport).filter(ComplianceReport.id == report_id).first()
    if not report:
        raise NotFoundError("Compliance report not found")

    current = ReportStatus(report.status)
    if target not in STATUS_TRANSITIONS[current]:
        raise InvalidTransitionError("compliance report", current.value, target.value)

    report.status = target
    if target == ReportStatus.SUBMITTED:
        report.submitted_at = utc_now()
    db.commit()
    db.refresh(report)
    logger.info("compliance_report_status_changed", report_id=str(report.id), status=target.value)
    return report

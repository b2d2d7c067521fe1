from datetime import datetime
from decimal import Decimal

import pytest
from conftest import auth_headers, request_collection

from lus_emi.core.errors import ValidationError
from lus_emi.database import utc_now
from lus_emi.models.aml import AmlAlert, AmlAlertStatus, AmlConfigType
from lus_emi.models.compliance import ReportType
from lus_emi.models.transaction import Transaction, TransactionStatus, TransactionType
from lus_emi.services.compliance import period_bounds, weekly_compliance


def _generate(client, user, report_type, period):
    return client.post(
        "/api/compliance/reports/generate",
        json={"report_type": report_type, "period": period},
        headers=auth_headers(user),
    )


def test_period_bounds():
    assert period_bounds(ReportType.DAILY_SUMMARY, "2026-10-16") == (
        datetime(2026, 10, 16), datetime(2026, 10, 17),
    )
    assert period_bounds(ReportType.WEEKLY_COMPLIANCE, "2026-W42") == (
        datetime(2026, 10, 12), datetime(2026, 10, 19),
    )
    assert period_bounds(ReportType.MONTHLY_REGULATORY, "2026-12") == (
        datetime(2026, 12, 1), datetime(2027, 1, 1),
    )


@pytest.mark.parametrize("report_type, period", [
    (ReportType.DAILY_SUMMARY, "16/10/2026"),
    (ReportType.WEEKLY_COMPLIANCE, "2026-42"),
    (ReportType.MONTHLY_REGULATORY, "2026-13"),
])
def test_bad_periods(report_type, period):
    with pytest.raises(ValidationError):
        period_bounds(report_type, period)


def test_daily_summary(client, merchant, cashier, finance, single_threshold):
    tx = request_collection(client, merchant, 60000, "VMF-001")
    client.post(
        f"/api/transactions/{tx['id']}/verify",
        json={"amount": 60000, "vmf_number": "VMF-001"},
        headers=auth_headers(cashier),
    )

    response = _generate(client, finance, "daily_summary", utc_now().date().isoformat())

    assert response.status_code == 201
    data = response.json()["report_data"]
    assert data["transactions"] == {"count": 1, "totalAmount": 60000.0, "completedAmount": 60000.0}
    assert data["alerts"] == {"total": 1, "highRisk": 0}


def test_weekly_flags_structuring(db, merchant):
    for i, amount in enumerate(("41000", "45000", "49999", "39000")):
        db.add(Transaction(
            reference=f"LUS-STR00{i}",
            from_user_id=merchant.id,
            to_user_id=merchant.id,
            amount=Decimal(amount),
            type=TransactionType.CASH_DIGITIZATION,
            status=TransactionStatus.COMPLETED,
            created_at=datetime(2026, 10, 13, 9, i),
        ))
    db.commit()

    data = weekly_compliance(db, *period_bounds(ReportType.WEEKLY_COMPLIANCE, "2026-W42"))

    assert data["suspiciousPatterns"] == [{"userId": str(merchant.id), "nearThresholdCount": 3}]
    assert data["transactionBreakdown"] == [
        {"type": "cash_digitization", "count": 4, "totalAmount": 174999.0},
    ]


def test_monthly_flags_escalations(client, db, merchant, finance):
    db.add(AmlAlert(
        user_id=merchant.id,
        alert_type=AmlConfigType.WEEKLY_VOLUME,
        risk_score=85,
        description="Weekly volume of ZMW 850,000.00 reached the threshold",
        status=AmlAlertStatus.ESCALATED,
    ))
    db.commit()

    data = _generate(client, finance, "monthly_regulatory", utc_now().strftime("%Y-%m")).json()["report_data"]

    assert data["amlCompliance"] == {"alertsGenerated": 1, "alertsCleared": 0, "alertsEscalated": 1}
    assert data["regulatoryStatus"] == "attention_required"


def test_report_status_moves_forward_only(client, finance):
    report_id = _generate(client, finance, "monthly_regulatory", "2026-09").json()["id"]

    def move(status):
        return client.patch(
            f"/api/compliance/reports/{report_id}/status",
            json={"status": status},
            headers=auth_headers(finance),
        )

    assert move("acknowledged").status_code == 409
    submitted = move("submitted").json()
    assert submitted["status"] == "submitted"
    assert submitted["submitted_at"] is not None
    assert move("acknowledged").json()["status"] == "acknowledged"

    listed = client.get("/api/compliance/reports", headers=auth_headers(finance)).json()
    assert listed[0]["report_data"]["regulatoryStatus"] == "compliant"


def test_invalid_period_via_api(client, finance):
    response = _generate(client, finance, "weekly_compliance", "week 42")

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid period 'week 42'. Expected YYYY-Www"


def test_merchants_cannot_generate(client, merchant):
    assert _generate(client, merchant, "daily_summary", "2026-10-16").status_code == 403

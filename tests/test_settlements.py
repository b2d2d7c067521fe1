from decimal import Decimal

import pytest
from conftest import auth_headers, request_collection

from lus_emi.models.settlement import SettlementRequest, SettlementStatus
from lus_emi.models.transaction import Transaction, TransactionType
from lus_emi.services.settlements import TRANSITIONS


@pytest.fixture
def collected(client, merchant, cashier):
    """Merchant of the finance officer's organization collected ZMW 25,000 today."""
    tx = request_collection(client, merchant, 25000, "VMF-001")
    response = client.post(
        f"/api/transactions/{tx['id']}/verify",
        json={"amount": 25000, "vmf_number": "VMF-001"},
        headers=auth_headers(cashier),
    )
    assert response.json()["status"] == "completed"
    return tx


def _request(client, finance, amount=10000):
    return client.post(
        "/api/settlement-requests",
        json={"amount": amount, "bank_name": "Zanaco", "account_number": "0012345678"},
        headers=auth_headers(finance),
    )


def _review(client, admin, request_id, action, body=None):
    return client.patch(
        f"/api/admin/settlement-requests/{request_id}/{action}",
        json=body,
        headers=auth_headers(admin),
    )


def test_finance_requests_settlement_within_capacity(client, finance, collected):
    response = _request(client, finance, 10000)

    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    breakdown = client.get("/api/settlement-breakdown", headers=auth_headers(finance)).json()
    assert breakdown["todays_collections"] == 25000.0
    assert breakdown["pending_total"] == 10000.0
    assert breakdown["settlement_capacity"] == 15000.0
    assert breakdown["by_status"]["pending"] == 1


def test_request_above_capacity_is_refused(client, finance, collected):
    assert _request(client, finance, 20000).status_code == 201

    response = _request(client, finance, 6000)

    assert response.status_code == 400
    body = response.json()
    assert body["settlement_capacity"] == 5000.0
    assert body["request_amount"] == 6000.0


def test_only_finance_with_organization_can_request(client, merchant, collected):
    assert _request(client, merchant).status_code == 403


def test_approve_then_complete_records_settlement_transaction(client, db, finance, admin, collected):
    request_id = _request(client, finance).json()["id"]

    approved = _review(client, admin, request_id, "approve").json()
    assert approved["status"] == "approved"
    assert approved["reviewed_by"] == str(admin.id)
    assert approved["reviewed_at"] is not None

    completed = _review(client, admin, request_id, "complete").json()
    assert completed["status"] == "completed"

    payout = db.query(Transaction).filter(Transaction.type == TransactionType.SETTLEMENT).one()
    assert payout.amount == Decimal("10000.00")
    assert payout.to_user_id == finance.id

    titles = [n["title"] for n in client.get("/api/notifications", headers=auth_headers(finance)).json()]
    assert "Settlement approved" in titles
    assert "Settlement completed" in titles


def test_hold_then_release(client, finance, admin, collected):
    request_id = _request(client, finance).json()["id"]

    held = _review(client, admin, request_id, "hold", {"hold_reason": "settlement_cover"}).json()
    assert held["status"] == "hold"
    assert held["hold_reason"] == "settlement_cover"

    assert _review(client, admin, request_id, "approve").json()["status"] == "approved"


def test_other_reason_requires_comment(client, finance, admin, collected):
    request_id = _request(client, finance).json()["id"]

    response = _review(client, admin, request_id, "reject", {"reject_reason": "other"})

    assert response.status_code == 400
    assert response.json()["message"] == "Comment is required when selecting 'other' reason"


def test_comment_is_capped(client, finance, admin, collected):
    request_id = _request(client, finance).json()["id"]

    response = _review(
        client, admin, request_id, "hold",
        {"hold_reason": "other", "reason_comment": "x" * 126},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Comment must be 125 characters or less"


def test_rejected_is_terminal(client, db, finance, admin, collected):
    request_id = _request(client, finance).json()["id"]
    _review(client, admin, request_id, "reject", {"reject_reason": "duplicate_request"})

    response = _review(client, admin, request_id, "approve")

    assert response.status_code == 409
    db.expire_all()
    assert db.query(SettlementRequest).one().status == SettlementStatus.REJECTED


def test_pending_cannot_jump_to_completed(client, finance, admin, collected):
    request_id = _request(client, finance).json()["id"]

    response = _review(client, admin, request_id, "complete")

    assert response.status_code == 409
    assert response.json()["current_status"] == "pending"


def test_only_admin_reviews(client, finance, collected):
    request_id = _request(client, finance).json()["id"]

    assert _review(client, finance, request_id, "approve").status_code == 403


def test_transition_table_edges():
    assert TRANSITIONS[SettlementStatus.PENDING] == {
        SettlementStatus.APPROVED, SettlementStatus.HOLD, SettlementStatus.REJECTED,
    }
    assert TRANSITIONS[SettlementStatus.APPROVED] == {SettlementStatus.COMPLETED}
    assert TRANSITIONS[SettlementStatus.REJECTED] == set()
    assert TRANSITIONS[SettlementStatus.COMPLETED] == set()

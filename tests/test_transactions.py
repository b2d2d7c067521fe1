"""
Collection request lifecycle: request, verify, reject, expire.
"""
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

import pytest
from conftest import auth_headers, request_collection

from lus_emi.core.errors import ConflictError
from lus_emi.database import utc_now
from lus_emi.models.organization import KycStatus
from lus_emi.models.transaction import Transaction, TransactionStatus, TransactionType
from lus_emi.models.wallet import Wallet
from lus_emi.services import transactions


def _wallet(db, user) -> Wallet:
    db.expire_all()
    return db.query(Wallet).filter(Wallet.user_id == user.id).first()


def _verify(client, cashier, tx_id, amount, vmf="VMF-001"):
    return client.post(
        f"/api/transactions/{tx_id}/verify",
        json={"amount": amount, "vmf_number": vmf},
        headers=auth_headers(cashier),
    )


def test_merchant_requests_collection(client, merchant):
    tx = request_collection(client, merchant)

    assert tx["status"] == "pending"
    assert tx["reference"].startswith("LUS-")
    assert len(tx["reference"]) == 10
    assert tx["amount"] == 25000.0
    assert tx["to_user_id"] == str(merchant.id)
    assert tx["expires_at"] is not None


def test_matching_verification_completes_and_credits_wallet(client, db, merchant, cashier):
    tx = request_collection(client, merchant, 25000, "VMF-001")

    response = _verify(client, cashier, tx["id"], 25000, "VMF-001")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["processed_by"] == str(cashier.id)

    merchant_wallet = _wallet(db, merchant)
    assert merchant_wallet.daily_collected == Decimal("25000.00")
    assert merchant_wallet.balance == Decimal("25000.00")
    assert _wallet(db, cashier).daily_transferred == Decimal("25000.00")


def test_amount_mismatch_rejects_without_crediting(client, db, merchant, cashier):
    tx = request_collection(client, merchant, 25000, "VMF-001")

    body = _verify(client, cashier, tx["id"], 20000, "VMF-001").json()

    assert body["status"] == "rejected"
    assert body["rejection_reason"] == "Amount Not Same as Merchant's"
    assert _wallet(db, merchant).daily_collected == Decimal("0.00")


def test_vmf_mismatch_rejects(client, merchant, cashier):
    tx = request_collection(client, merchant, 25000, "VMF-001")

    body = _verify(client, cashier, tx["id"], 25000, "VMF-999").json()

    assert body["status"] == "rejected"
    assert body["rejection_reason"] == "VMF Number Not Same as Merchant's"


def test_amount_is_checked_before_vmf(client, merchant, cashier):
    tx = request_collection(client, merchant, 25000, "VMF-001")

    body = _verify(client, cashier, tx["id"], 1000, "VMF-999").json()

    assert body["rejection_reason"] == "Amount Not Same as Merchant's"


def test_second_verification_is_a_conflict_and_credits_once(client, db, merchant, cashier, other_cashier):
    tx = request_collection(client, merchant, 25000, "VMF-001")

    assert _verify(client, cashier, tx["id"], 25000).status_code == 200
    second = _verify(client, other_cashier, tx["id"], 25000)

    assert second.status_code == 409
    assert second.json()["current_status"] == "completed"
    assert _wallet(db, merchant).daily_collected == Decimal("25000.00")
    assert _wallet(db, other_cashier) is None


def test_compare_and_set_loses_when_status_moved(db, merchant, organization):
    tx = Transaction(
        reference="LUS-RACE01",
        from_user_id=merchant.id,
        to_user_id=merchant.id,
        amount=Decimal("100.00"),
        type=TransactionType.CASH_DIGITIZATION,
        status=TransactionStatus.PENDING,
        vmf_number="VMF-1",
    )
    db.add(tx)
    db.commit()

    # another worker completed it after we loaded the row
    db.query(Transaction).filter(Transaction.id == tx.id).update(
        {"status": TransactionStatus.COMPLETED}, synchronize_session=False
    )
    db.commit()
    tx.status = TransactionStatus.PENDING  # stale in-memory view

    with pytest.raises(ConflictError, match="already processed"):
        transactions._transition(db, tx, TransactionStatus.COMPLETED)


def test_only_one_pending_request_per_merchant(client, merchant):
    request_collection(client, merchant, 1000, "VMF-1")

    response = client.post(
        "/api/transactions",
        json={"amount": 2000, "vmf_number": "VMF-2"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 409
    assert response.json()["code"] == "PENDING_TRANSACTION_EXISTS"


def test_timed_out_request_expires_on_verify(client, db, merchant, cashier):
    tx = request_collection(client, merchant)
    db.query(Transaction).filter(Transaction.id == UUID(tx["id"])).update(
        {"expires_at": utc_now() - timedelta(seconds=1)}, synchronize_session=False
    )
    db.commit()

    response = _verify(client, cashier, tx["id"], 25000)

    assert response.status_code == 409
    assert response.json()["message"] == "Transaction has expired"
    db.expire_all()
    stored = db.query(Transaction).filter(Transaction.id == UUID(tx["id"])).one()
    assert stored.status == TransactionStatus.EXPIRED
    assert _wallet(db, merchant).daily_collected == Decimal("0.00")


def test_timed_out_request_expires_on_reject(client, db, merchant, cashier):
    tx = request_collection(client, merchant)
    db.query(Transaction).filter(Transaction.id == UUID(tx["id"])).update(
        {"expires_at": utc_now() - timedelta(seconds=30)}, synchronize_session=False
    )
    db.commit()

    response = client.post(
        f"/api/transactions/{tx['id']}/reject",
        json={"reason": "Torn VMF voucher"},
        headers=auth_headers(cashier),
    )

    assert response.status_code == 409
    assert response.json()["message"] == "Transaction has expired"
    db.expire_all()
    stored = db.query(Transaction).filter(Transaction.id == UUID(tx["id"])).one()
    assert stored.status == TransactionStatus.EXPIRED
    assert stored.rejection_reason is None


def test_blank_rejection_reason(client, db, merchant, cashier):
    tx = request_collection(client, merchant)

    response = client.post(
        f"/api/transactions/{tx['id']}/reject",
        json={"reason": "   "},
        headers=auth_headers(cashier),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Rejection reason is required"
    db.expire_all()
    stored = db.query(Transaction).filter(Transaction.id == UUID(tx["id"])).one()
    assert stored.status == TransactionStatus.PENDING


def test_stale_request_does_not_block_a_new_one(client, db, merchant):
    first = request_collection(client, merchant, 1000, "VMF-1")
    db.query(Transaction).filter(Transaction.id == UUID(first["id"])).update(
        {"expires_at": utc_now() - timedelta(seconds=5)}, synchronize_session=False
    )
    db.commit()

    second = request_collection(client, merchant, 2000, "VMF-2")

    assert second["status"] == "pending"
    db.expire_all()
    assert db.query(Transaction).filter(Transaction.id == UUID(first["id"])).one().status == TransactionStatus.EXPIRED


def test_admin_expiry_sweep(client, db, merchant, admin):
    tx = request_collection(client, merchant)
    db.query(Transaction).filter(Transaction.id == UUID(tx["id"])).update(
        {"expires_at": utc_now() - timedelta(seconds=1)}, synchronize_session=False
    )
    db.commit()

    response = client.post("/api/admin/transactions/expire", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["expired"] == 1


def test_unverified_organization_cannot_transact(client, db, merchant, organization):
    organization.kyc_status = KycStatus.IN_REVIEW
    db.commit()

    response = client.post(
        "/api/transactions",
        json={"amount": 1000, "vmf_number": "VMF-1"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 403
    assert "KYC" in response.json()["message"]


def test_single_transaction_limit(client, db, merchant, organization):
    organization.single_transaction_limit = Decimal("10000.00")
    db.commit()

    response = client.post(
        "/api/transactions",
        json={"amount": 10000.01, "vmf_number": "VMF-1"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 400
    assert "single transaction limit" in response.json()["message"]


def test_daily_wallet_limit(client, db, merchant):
    client.get("/api/wallet", headers=auth_headers(merchant))
    wallet = _wallet(db, merchant)
    wallet.daily_limit = Decimal("5000.00")
    wallet.daily_collected = Decimal("4000.00")
    db.commit()

    response = client.post(
        "/api/transactions",
        json={"amount": 1500, "vmf_number": "VMF-1"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Daily limit exceeded. Remaining: ZMW 1,000.00"


def test_cash_digitization_requires_vmf(client, merchant):
    response = client.post("/api/transactions", json={"amount": 500}, headers=auth_headers(merchant))

    assert response.status_code == 400
    assert response.json()["message"] == "VMF number is required for cash digitization"


def test_only_merchants_request_and_only_cashiers_verify(client, merchant, cashier):
    response = client.post(
        "/api/transactions",
        json={"amount": 500, "vmf_number": "VMF-1"},
        headers=auth_headers(cashier),
    )
    assert response.status_code == 403

    tx = request_collection(client, merchant)
    forbidden = client.post(
        f"/api/transactions/{tx['id']}/verify",
        json={"amount": 25000, "vmf_number": "VMF-001"},
        headers=auth_headers(merchant),
    )
    assert forbidden.status_code == 403


def test_otp_binds_request_to_cashier(client, merchant, cashier, other_cashier):
    session = client.post("/api/cashier/sessions", headers=auth_headers(cashier)).json()
    assert len(session["otp"]) == 6

    tx = request_collection(client, merchant, cashier_otp=session["otp"])
    assert tx["assigned_cashier_id"] == str(cashier.id)

    assert _verify(client, other_cashier, tx["id"], 25000).status_code == 403
    queue = client.get("/api/transactions/pending", headers=auth_headers(other_cashier)).json()
    assert queue == []

    assert _verify(client, cashier, tx["id"], 25000).json()["status"] == "completed"


def test_unknown_otp_is_rejected(client, merchant):
    response = client.post(
        "/api/transactions",
        json={"amount": 500, "vmf_number": "VMF-1", "cashier_otp": "000000"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired cashier OTP"


def test_cashier_rejects_with_reason(client, merchant, cashier):
    tx = request_collection(client, merchant)

    response = client.post(
        f"/api/transactions/{tx['id']}/reject",
        json={"reason": "Torn VMF voucher"},
        headers=auth_headers(cashier),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "Torn VMF voucher"

    notifications = client.get("/api/notifications", headers=auth_headers(merchant)).json()
    assert notifications[0]["title"] == "Transaction rejected"


def test_listing_by_role(client, merchant, cashier, admin):
    tx = request_collection(client, merchant)
    _verify(client, cashier, tx["id"], 25000)

    mine = client.get("/api/transactions", headers=auth_headers(merchant)).json()
    processed = client.get("/api/transactions", headers=auth_headers(cashier)).json()
    everything = client.get("/api/admin/transactions?status=completed", headers=auth_headers(admin)).json()

    assert [t["id"] for t in mine] == [tx["id"]]
    assert [t["id"] for t in processed] == [tx["id"]]
    assert [t["id"] for t in everything] == [tx["id"]]


def test_admin_sets_priority(client, merchant, admin):
    tx = request_collection(client, merchant)

    response = client.patch(
        f"/api/transactions/{tx['id']}/priority",
        json={"priority": "high"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["priority"] == "high"

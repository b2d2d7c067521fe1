from conftest import auth_headers


def _create(client, admin, name="Kabwata Market Co-op"):
    response = client.post(
        "/api/admin/organizations",
        json={"name": name, "registration_number": "PACRA-778812", "tpin": "2003004005"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201, response.text
    return response.json()


def _kyc(client, admin, org_id, status):
    return client.patch(
        f"/api/admin/organizations/{org_id}/kyc",
        json={"kyc_status": status},
        headers=auth_headers(admin),
    )


def test_new_organization_starts_pending_with_default_limits(client, admin):
    org = _create(client, admin)

    assert org["kyc_status"] == "pending"
    assert org["is_active"] is True
    assert org["single_transaction_limit"] == 500000.0
    assert org["daily_transaction_limit"] == 5000000.0
    assert org["monthly_transaction_limit"] == 50000000.0


def test_kyc_walks_review_path(client, admin):
    org_id = _create(client, admin)["id"]

    assert _kyc(client, admin, org_id, "in_review").json()["kyc_status"] == "in_review"
    assert _kyc(client, admin, org_id, "rejected").json()["kyc_status"] == "rejected"
    assert _kyc(client, admin, org_id, "in_review").json()["kyc_status"] == "in_review"
    assert _kyc(client, admin, org_id, "verified").json()["kyc_status"] == "verified"


def test_kyc_cannot_skip_review(client, admin):
    org_id = _create(client, admin)["id"]

    response = _kyc(client, admin, org_id, "verified")

    assert response.status_code == 409
    assert response.json()["current_status"] == "pending"


def test_suspended_organization_blocks_merchants(client, admin, merchant, organization):
    toggled = client.patch(f"/api/admin/organizations/{organization.id}/toggle", headers=auth_headers(admin))
    assert toggled.json()["is_active"] is False

    response = client.post(
        "/api/transactions",
        json={"amount": 1000, "vmf_number": "VMF-1"},
        headers=auth_headers(merchant),
    )

    assert response.status_code == 403
    assert "suspended" in response.json()["message"]


def test_admin_updates_limits(client, admin, organization):
    response = client.patch(
        f"/api/admin/organizations/{organization.id}/limits",
        json={"single_transaction_limit": 75000},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["single_transaction_limit"] == 75000.0
    assert response.json()["daily_transaction_limit"] == 5000000.0


def test_listing_filters_by_kyc(client, admin, organization):
    _create(client, admin)

    pending = client.get("/api/admin/organizations?kyc_status=pending", headers=auth_headers(admin)).json()
    everything = client.get("/api/admin/organizations", headers=auth_headers(admin)).json()

    assert [o["name"] for o in pending] == ["Kabwata Market Co-op"]
    assert len(everything) == 2


def test_members_see_only_their_organization(client, merchant, organization, admin):
    _create(client, admin)

    mine = client.get("/api/organizations", headers=auth_headers(merchant)).json()

    assert [o["id"] for o in mine] == [str(organization.id)]


def test_non_admin_cannot_manage_organizations(client, finance):
    response = client.post("/api/admin/organizations", json={"name": "X"}, headers=auth_headers(finance))

    assert response.status_code == 403
    assert response.json()["message"] == "Insufficient permissions"


def test_unknown_organization(client, admin):
    response = client.get(
        "/api/admin/organizations/7b0c8e8e-0000-4000-8000-000000000000",
        headers=auth_headers(admin),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Organization not found"

"""
Pytest configuration and fixtures.

The app runs against a shared in-memory SQLite database; tables are rebuilt
for every test.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="lus_emi_uploads_"))
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from lus_emi.core.security import create_access_token, hash_password
from lus_emi.database import Base, SessionLocal, engine
from lus_emi.main import app
from lus_emi.models.aml import AmlConfigType, AmlConfiguration
from lus_emi.models.organization import KycStatus, Organization
from lus_emi.models.user import Role, User

PASSWORD = "collect-cash-2026"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(autouse=True)
def db() -> Generator[Session, Any, None]:
    """Fresh schema and a session for arranging/inspecting rows."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client() -> Generator[TestClient, Any, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def organization(db: Session) -> Organization:
    org = Organization(
        name="Chilenje Traders Ltd",
        business_type="retail",
        registration_number="PACRA-120045",
        tpin="1002003004",
        kyc_status=KycStatus.VERIFIED,
        is_active=True,
    )
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def make_user(db: Session, email: str, role: Role, organization: Organization | None = None) -> User:
    user = User(
        email=email,
        hashed_password=PASSWORD_HASH,
        first_name=email.split("@")[0].capitalize(),
        role=role,
        organization_id=organization.id if organization else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def merchant(db: Session, organization: Organization) -> User:
    return make_user(db, "merchant@lusapay.co.zm", Role.MERCHANT, organization)


@pytest.fixture
def cashier(db: Session) -> User:
    return make_user(db, "cashier@lusapay.co.zm", Role.CASHIER)


@pytest.fixture
def other_cashier(db: Session) -> User:
    return make_user(db, "cashier2@lusapay.co.zm", Role.CASHIER)


@pytest.fixture
def finance(db: Session, organization: Organization) -> User:
    return make_user(db, "finance@lusapay.co.zm", Role.FINANCE, organization)


@pytest.fixture
def admin(db: Session) -> User:
    return make_user(db, "admin@lusapay.co.zm", Role.ADMIN)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def single_threshold(db: Session, admin: User) -> AmlConfiguration:
    config = AmlConfiguration(
        config_type=AmlConfigType.SINGLE_TRANSACTION,
        threshold_amount=Decimal("50000.00"),
        description="Single cash collection",
        is_active=True,
        created_by=admin.id,
    )
    db.add(config)
    db.commit()
    db.refresh(config)
    return config


def request_collection(client: TestClient, merchant: User, amount: float = 25000, vmf: str = "VMF-001", **extra) -> dict:
    response = client.post(
        "/api/transactions",
        json={"amount": amount, "vmf_number": vmf, **extra},
        headers=auth_headers(merchant),
    )
    assert response.status_code == 201, response.text
    return response.json()

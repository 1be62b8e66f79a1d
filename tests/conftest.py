"""
conftest.py — Shared Test Fixtures for the Wheels & Glass CRM

Provides an in-memory SQLite database, FastAPI TestClient with auth and
service overrides, and factory fixtures for core models.

Business Rules:
- All tests run against an isolated in-memory DB
- Auth is overridden so tests don't need a session cookie
- The technician directory is built per test from fixed data, never the seed file
- Outbound email is replaced with an AsyncMock for every client request

Called by: all test files via pytest autodiscovery
Depends on: wheelsglass.models (Base), wheelsglass.database (get_db), wheelsglass.dependencies
"""

import os

# Must be set before importing wheelsglass modules
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["AGENT_API_KEY"] = "test-agent-key"
os.environ["ADMIN_EMAILS"] = "owner@wheelsglass.com, Ops@WheelsGlass.com"
os.environ["ADMIN_PASSWORD"] = "correct-horse"
os.environ["SENDGRID_API_KEY"] = ""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wheelsglass.connectors.vin_decoders import BaseDecoder, VehicleDetails
from wheelsglass.models import AdminUser, Base, Customer, QuoteSubmission
from wheelsglass.services.technician_service import Technician, TechnicianDirectory
from wheelsglass.services.vin_service import VinLookupService

# ── In-memory SQLite engine ──────────────────────────────────────────

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fakes ────────────────────────────────────────────────────────────


class FakeDecoder(BaseDecoder):
    """Decoder returning a canned result (or raising) without network access."""

    def __init__(self, source="nhtsa", result: dict | None = None, error: Exception | None = None):
        super().__init__(timeout=1, max_retries=0)
        self.source = source
        self.result = result or {}
        self.error = error
        self.calls = []

    async def _do_decode(self, vin: str) -> VehicleDetails:
        self.calls.append(vin)
        if self.error:
            raise self.error
        return VehicleDetails(vin=vin, source=self.source, **self.result)


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def admin_user(db_session: Session) -> AdminUser:
    user = AdminUser(
        email="owner@wheelsglass.com",
        name="Shop Owner",
        role="admin",
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def technicians() -> TechnicianDirectory:
    """Five technicians around San Diego and Seattle.

    92101: Ana (available, 4), Cara (busy, 5)
    92103: Ana (available, 4), Ben (available, 5)
    98101: Dev and Eli (both available, 5)
    """
    return TechnicianDirectory([
        Technician(id=1, name="Ana Ortiz", phone="(619) 555-0101", city="San Diego", state="CA",
                   specialty="Windshield", status="available", rating=4,
                   coverage_zips=["92101", "92103"]),
        Technician(id=2, name="Ben Price", phone="(619) 555-0102", city="San Diego", state="CA",
                   specialty="ADAS Calibration", status="available", rating=5,
                   coverage_zips=["92103"]),
        Technician(id=3, name="Cara Lin", phone="(619) 555-0103", city="San Diego", state="CA",
                   specialty="Side Glass", status="busy", rating=5,
                   coverage_zips=["92101"]),
        Technician(id=5, name="Eli Moss", phone="(206) 555-0105", city="Seattle", state="WA",
                   specialty="Wheel Repair", status="available", rating=5,
                   coverage_zips=["98101"]),
        Technician(id=4, name="Dev Shah", phone="(206) 555-0104", city="Seattle", state="WA",
                   specialty="Wheel Repair", status="available", rating=5,
                   coverage_zips=["98101"]),
    ])


@pytest.fixture()
def make_decoder():
    def _make(source="nhtsa", result: dict | None = None, error: Exception | None = None) -> FakeDecoder:
        return FakeDecoder(source=source, result=result, error=error)

    return _make


@pytest.fixture()
def vin_service() -> VinLookupService:
    """VIN service with no decoders: every lookup comes back undecoded."""
    return VinLookupService([])


@pytest.fixture()
def email_mock():
    with patch(
        "wheelsglass.services.quote_service.send_quote_confirmation",
        new_callable=AsyncMock,
        return_value=True,
    ) as m:
        yield m


def _build_client(db_session, overrides: dict):
    from wheelsglass.database import get_db
    from wheelsglass.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides.update(overrides)
    return app


@pytest.fixture()
def client(db_session, admin_user, technicians, vin_service, email_mock) -> TestClient:
    """FastAPI TestClient with auth overridden to return admin_user."""
    from wheelsglass.dependencies import get_technician_directory, get_vin_lookup, require_user

    app = _build_client(db_session, {
        require_user: lambda: admin_user,
        get_technician_directory: lambda: technicians,
        get_vin_lookup: lambda: vin_service,
    })
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def anon_client(db_session, technicians, vin_service, email_mock) -> TestClient:
    """TestClient with real auth (no session) for access-control tests."""
    from wheelsglass.dependencies import get_technician_directory, get_vin_lookup

    app = _build_client(db_session, {
        get_technician_directory: lambda: technicians,
        get_vin_lookup: lambda: vin_service,
    })
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ── Factories ────────────────────────────────────────────────────────


@pytest.fixture()
def make_customer(db_session: Session):
    def _make(**kw) -> Customer:
        data = {
            "first_name": "Jane",
            "last_name": "Driver",
            "email": "jane@example.com",
            "phone": "(619) 555-0199",
            "postal_code": "92101",
        }
        data.update(kw)
        c = Customer(**data)
        db_session.add(c)
        db_session.commit()
        db_session.refresh(c)
        return c

    return _make


@pytest.fixture()
def make_quote(db_session: Session):
    def _make(**kw) -> QuoteSubmission:
        data = {
            "first_name": "Jane",
            "last_name": "Driver",
            "mobile_phone": "(619) 555-0199",
            "email": "jane@example.com",
            "location": "San Diego, CA",
            "zip_code": "92101",
            "service_type": "Windshield Replacement",
            "division": "glass",
            "year": 2019,
            "make": "Honda",
            "model": "Civic",
            "notes": "Crack across driver side",
            "selected_windows": ["windshield"],
            "selected_wheels": [],
            "uploaded_files": [],
            "status": "submitted",
        }
        data.update(kw)
        q = QuoteSubmission(**data)
        db_session.add(q)
        db_session.commit()
        db_session.refresh(q)
        return q

    return _make


@pytest.fixture()
def glass_payload() -> dict:
    return {
        "firstName": "Jane",
        "lastName": "Driver",
        "mobilePhone": "(619) 555-0199",
        "email": "jane@example.com",
        "location": "San Diego, CA",
        "zipCode": "92101",
        "serviceType": "Windshield Replacement",
        "division": "glass",
        "year": "2019",
        "make": "Honda",
        "model": "Civic",
        "selectedWindows": ["windshield"],
    }


@pytest.fixture()
def wheels_payload() -> dict:
    return {
        "firstName": "Sam",
        "lastName": "Rivers",
        "mobilePhone": "206-555-0142",
        "email": "sam@example.com",
        "location": "Seattle, WA",
        "zipCode": "98101",
        "serviceType": "Curb Rash Repair",
        "division": "wheels",
        "selectedWheels": ["front-left", "rear-left"],
    }

import os

# Audit events go nowhere during tests
os.environ.setdefault("AUDIT_LOG_FILE", "")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.company import Company, Location  # noqa: E402
from app.models.material import Material, MaterialVariant  # noqa: E402
from app.models.user import EmployeeType, User, UserRole  # noqa: E402

# In-memory SQLite, no MySQL required
_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestingSession = sessionmaker(bind=_engine, autocommit=False, autoflush=False)


@pytest.fixture(autouse=True)
def reset_db():
    """Drop and recreate all tables before every test for a clean slate."""
    Base.metadata.drop_all(bind=_engine)
    Base.metadata.create_all(bind=_engine)
    yield
    Base.metadata.drop_all(bind=_engine)


@pytest.fixture
def db(reset_db):
    session = _TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories re-used across multiple test modules
# ---------------------------------------------------------------------------

def make_company(db, name="Acme Floors", preferred=False):
    company = Company(name=name, preferred_price_enabled=preferred)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def make_location(db, company, name="Main Shop"):
    location = Location(company_id=company.id, name=name)
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def make_user(db, email, role, company=None, employee_type=None, hashed_password="unused"):
    user = User(
        email=email,
        hashed_password=hashed_password,
        full_name=email.split("@")[0],
        role=role,
        employee_type=employee_type,
        company_id=company.id if company else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def operator_headers(db, email="root@platform.test"):
    return auth_headers(make_user(db, email, UserRole.SUPERADMIN))


def company_admin_headers(db, company, email=None):
    email = email or f"admin-{company.id}@company.test"
    return auth_headers(make_user(db, email, UserRole.COMPANY, company=company))


def employee_headers(db, company, employee_type=EmployeeType.INSTALLER, email=None):
    email = email or f"{employee_type.value.lower()}-{company.id}@company.test"
    return auth_headers(
        make_user(db, email, UserRole.EMPLOYEE, company=company, employee_type=employee_type)
    )


def make_material(db, name="Epoxy", type="base coat", unit="gallon", is_active=True):
    material = Material(name=name, type=type, unit=unit, is_active=is_active)
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


def make_variant(
    db,
    material,
    name="Epoxy Clear",
    color=None,
    regular_price=50.0,
    preferred_price=40.0,
    coverage_area=300.0,
    overage_rate=0.1,
    is_active=True,
):
    variant = MaterialVariant(
        material_id=material.id,
        name=name,
        color=color,
        regular_price=regular_price,
        preferred_price=preferred_price,
        coverage_area=coverage_area,
        overage_rate=overage_rate,
        is_active=is_active,
    )
    db.add(variant)
    db.commit()
    db.refresh(variant)
    return variant


def standard_variants(db):
    """One active variant per category of the "standard" template."""
    base = make_variant(
        db, make_material(db, "Base Epoxy", "base coat"), "Base Grey",
        regular_price=50.0, preferred_price=40.0,
    )
    top = make_variant(
        db, make_material(db, "Top Urethane", "top coat"), "Top Satin",
        regular_price=70.0, preferred_price=60.0,
    )
    flake = make_variant(
        db, make_material(db, "Flake Blend", "broadcast", unit="box"), "Flake Mix",
        regular_price=30.0, preferred_price=25.0,
    )
    return base, top, flake


def job_payload(location_id, materials, job_number="J-1001", **overrides):
    payload = {
        "job_number": job_number,
        "location_id": location_id,
        "client_first_name": "Dana",
        "client_last_name": "Reyes",
        "client_address": "12 Garage Way",
        "area_sq_ft": 450,
        "duration": 2,
        "date": "2026-03-01",
        "install_date": "2026-03-10",
        "job_cost": 3200,
        "materials": materials,
    }
    payload.update(overrides)
    return payload

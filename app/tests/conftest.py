"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-pto-engine-tests")
os.environ.setdefault("APP_ENV", "local")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db
from app.core.security import create_access_token

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    AuditLog,
    Department,
    Employee,
    Holiday,
    Position,
    PtoApproval,
    PtoBalance,
    PtoBlackout,
    PtoRequest,
    PtoRequestStatus,
    PtoType,
    Role,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_employee(db):
    """Factory for employees: make_employee("E1", role=Role.MANAGER, manager=m)"""
    def _make(emp_code, name=None, role=Role.EMPLOYEE, manager=None, position=None, departments=(), active=True):
        employee = Employee(
            emp_code=emp_code,
            name=name or emp_code,
            role=role.value if isinstance(role, Role) else role,
            reporting_manager_id=manager.id if manager else None,
            position_id=position.id if position else None,
            active=active,
        )
        employee.departments = list(departments)
        db.add(employee)
        db.commit()
        db.refresh(employee)
        return employee
    return _make


@pytest.fixture
def admin(make_employee):
    return make_employee("ADM001", name="System Administrator", role=Role.ADMIN)


@pytest.fixture
def hr_user(make_employee):
    return make_employee("HR001", name="HR Officer", role=Role.HR)


@pytest.fixture
def manager(make_employee):
    return make_employee("MGR001", name="Line Manager", role=Role.MANAGER)


@pytest.fixture
def employee(make_employee, manager):
    return make_employee("EMP001", name="Regular Employee", manager=manager)


@pytest.fixture
def pto_type(db):
    """Single-level PTO type that holds balance"""
    pto_type = PtoType(name="Vacation", code="VAC", multi_level_approval=False, uses_balance=True)
    db.add(pto_type)
    db.commit()
    db.refresh(pto_type)
    return pto_type


@pytest.fixture
def make_blackout(db):
    """Factory for blackouts; defaults to an active company-wide full block"""
    def _make(name="Year End Freeze", **kwargs):
        values = {
            "is_company_wide": True,
            "restriction_type": "full_block",
            "is_active": True,
        }
        values.update(kwargs)
        blackout = PtoBlackout(name=name, **values)
        db.add(blackout)
        db.commit()
        db.refresh(blackout)
        return blackout
    return _make


@pytest.fixture
def make_request(db):
    """Factory for stored PTO requests (no chain, no verdict)"""
    def _make(user, pto_type, start_date, end_date, status=PtoRequestStatus.PENDING, total_days=None):
        pto_request = PtoRequest(
            user_id=user.id,
            pto_type_id=pto_type.id,
            start_date=start_date,
            end_date=end_date,
            total_days=total_days or Decimal((end_date - start_date).days + 1),
            status=status,
        )
        db.add(pto_request)
        db.commit()
        db.refresh(pto_request)
        return pto_request
    return _make


@pytest.fixture
def auth_headers():
    """Bearer header factory: auth_headers(employee)"""
    def _headers(employee) -> dict:
        token = create_access_token({"sub": str(employee.id)})
        return {"Authorization": f"Bearer {token}"}
    return _headers

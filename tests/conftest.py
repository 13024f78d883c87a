import pytest
import os
from datetime import date
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import ems.models  # noqa: F401
from ems.core.cache import QueryCache
from ems.core.security import get_password_hash
from ems.database import Base, get_db
from ems.main import app
from ems.models.employee import Employee
from ems.models.user import User, UserRole
from ems.services.identity import AuthEventBus, IdentityService
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "Password123!"


@pytest.fixture(scope="function")
def db_session():
    """A fresh schema for every test; services commit for real."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def cache():
    return QueryCache()


@pytest.fixture(scope="function")
def events():
    return AuthEventBus()


def _make_user(db_session, email, role, full_name):
    user = User(
        email=email,
        hashed_password=get_password_hash(PASSWORD),
        role=role,
        is_active=True,
        full_name=full_name,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def admin_user(db_session):
    return _make_user(db_session, "admin@company.com", UserRole.ADMIN, "System Admin")


@pytest.fixture(scope="function")
def employee_user(db_session):
    return _make_user(db_session, "jane.doe@company.com", UserRole.EMPLOYEE, "Jane Doe")


@pytest.fixture(scope="function")
def employee(db_session, employee_user):
    """HR record linked to ``employee_user``."""
    record = Employee(
        user_id=employee_user.id,
        full_name="Jane Doe",
        email=employee_user.email,
        department="Engineering",
        position="Developer",
        status="Active",
        base_salary=5000.0,
        join_date=date(2023, 1, 9),
    )
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture(scope="function")
def get_token(db_session):
    """Signs the user in against the app's event bus and returns an access token."""
    def _get_token(user):
        result = IdentityService(db_session, app.state.auth_events).sign_in(user.email, PASSWORD)
        return result.access_token
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.query_cache.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from restauri.main import app
from restauri.core.circuit_breaker import create_db_circuit_breaker
from restauri.core.database import Base, get_db
import restauri.models  # noqa: F401

from tests.helpers.auth_helpers import AuthHelpers

# One shared in-memory SQLite database for the whole run
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create tables
Base.metadata.create_all(bind=engine)

def override_get_db():
    """Override the default database dependency."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

# Override the dependency
app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(scope="function")
def db_session():
    """Session on the test database, closed after the test."""
    session = TestingSessionLocal()
    yield session
    session.close()

@pytest.fixture
def session_factory():
    """Session factory bound to the test database, for code that opens its own sessions."""
    return TestingSessionLocal

@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client that uses the test database."""
    return TestClient(app)

@pytest.fixture(autouse=True)
def cleanup_database():
    """Empty every table after each test."""
    yield
    db = TestingSessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()

@pytest.fixture(autouse=True)
def fresh_db_breaker():
    """Give every test a closed database breaker and the default db override."""
    app.state.db_breaker = create_db_circuit_breaker(failure_threshold=5, reset_timeout=30000)
    app.dependency_overrides[get_db] = override_get_db
    yield app.state.db_breaker
    app.dependency_overrides[get_db] = override_get_db

@pytest.fixture
def admin_user(db_session):
    return AuthHelpers.create_test_user(db_session, username="admin", role="admin")

@pytest.fixture
def regular_user(db_session):
    return AuthHelpers.create_test_user(db_session, username="editor", role="user")

@pytest.fixture
def admin_headers(admin_user):
    return AuthHelpers.get_auth_headers(AuthHelpers.create_access_token(admin_user))

@pytest.fixture
def user_headers(regular_user):
    return AuthHelpers.get_auth_headers(AuthHelpers.create_access_token(regular_user))

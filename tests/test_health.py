from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from restauri.core.circuit_breaker import create_db_circuit_breaker
from restauri.core.database import get_db
from restauri.main import app


@pytest.fixture
def broken_database():
    """Make every query raise as if the database were down."""
    error = OperationalError("SELECT 1", {}, Exception("connection refused"))
    session = MagicMock()
    session.query.side_effect = error
    session.get.side_effect = error
    session.execute.side_effect = error

    def override():
        yield session

    app.dependency_overrides[get_db] = override
    return session


@pytest.fixture
def tight_breaker():
    breaker = create_db_circuit_breaker(failure_threshold=2, reset_timeout=60000)
    app.state.db_breaker = breaker
    return breaker


def test_health_check(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "df-restauri-api"}

def test_liveness(client):
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}

def test_readiness(client, fresh_db_breaker):
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "ok"}
    assert fresh_db_breaker.total_calls == 1

def test_readiness_database_down(client, broken_database):
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert response.json() == {"status": "not ready", "database": "unreachable"}

def test_readiness_circuit_open(client, broken_database, tight_breaker):
    client.get("/api/v1/health/ready")
    client.get("/api/v1/health/ready")

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert response.json() == {"status": "not ready", "database": "circuit open"}
    assert tight_breaker.rejected_calls == 1


class TestDatabaseOutage:

    def test_database_error_then_open_circuit(self, client, broken_database, tight_breaker):
        for _ in range(2):
            response = client.get("/api/v1/team/")
            assert response.status_code == 500
            assert response.json()["error"]["message"] == "Database error"

        response = client.get("/api/v1/team/")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == 503
        assert body["error"]["message"] == "Service temporarily unavailable"
        assert response.headers["retry-after"] == "60"

        # The rejected request never reached the session
        assert broken_database.query.call_count == 2


class TestCircuitBreakerEndpoint:

    def test_requires_admin(self, client, user_headers):
        assert client.get("/api/v1/health/circuit-breaker").status_code == 401
        assert client.get("/api/v1/health/circuit-breaker", headers=user_headers).status_code == 403

    def test_reports_breaker_health(self, client, admin_headers):
        client.get("/api/v1/team/")

        response = client.get("/api/v1/health/circuit-breaker", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "database"
        assert data["state"] == "CLOSED"
        assert data["failure_threshold"] == 5
        assert data["reset_timeout"] == 30000
        assert data["metrics"]["total_calls"] == 1
        assert data["metrics"]["error_rate"] == 0.0
        assert data["metrics"]["last_error"] is None

    def test_reports_open_state(self, client, admin_headers, broken_database, tight_breaker):
        client.get("/api/v1/team/")
        client.get("/api/v1/team/")

        data = client.get("/api/v1/health/circuit-breaker", headers=admin_headers).json()

        assert data["state"] == "OPEN"
        assert data["failure_count"] == 2
        assert data["metrics"]["failed_calls"] == 2
        assert data["metrics"]["error_rate"] == 100.0
        assert "connection refused" in data["metrics"]["last_error"]

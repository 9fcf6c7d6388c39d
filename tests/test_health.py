"""
Tests for health check endpoints and application-level error handling.
"""

import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from forum.main import app
from forum.routes.health import COUNTED_TABLES, check_database_health


class TestHealthEndpoints:
    """Test health check endpoints."""

    @pytest.fixture
    def client(self):
        """Create test client."""
        return TestClient(app)

    def test_root_health_check_healthy(self, client):
        """Test root health endpoint when the database answers."""
        with patch("forum.routes.health.check_database_health") as mock_db:
            mock_db.return_value = {"status": "ok"}

            response = client.get("/health/")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "ok"
            assert data["db"]["status"] == "ok"
            assert "version" in data
            assert "timestamp" in data

    def test_root_health_check_db_down(self, client):
        """Test health endpoint when database is down."""
        with patch("forum.routes.health.check_database_health") as mock_db:
            mock_db.return_value = {"status": "down", "error": "Connection failed"}

            response = client.get("/health/")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "down"
            assert "error" in data["db"]

    def test_database_health_detailed(self, client):
        """Test detailed database health check."""
        with patch("forum.routes.health.check_database_health") as mock_health_check, \
             patch("forum.routes.health.get_session") as mock_session:

            mock_health_check.return_value = {"status": "ok"}

            mock_db = Mock()
            results = []
            for count in range(len(COUNTED_TABLES)):
                result = Mock()
                result.scalar.return_value = count * 10
                results.append(result)
            mock_db.execute.side_effect = results
            mock_session.return_value.__enter__.return_value = mock_db

            response = client.get("/health/db")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "ok"
            assert data["tables"]["users"] == 0
            assert data["tables"]["posts"] == 10
            assert data["tables"]["questions"] == 20
            assert "timestamp" in data

    def test_database_health_connection_error(self, client):
        """Test database health when connection fails."""
        with patch("forum.routes.health.check_database_health") as mock_health_check:
            mock_health_check.return_value = {"status": "down", "error": "Connection failed"}

            response = client.get("/health/db")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "down"
            assert "tables" not in data

    def test_check_reports_driver_error(self):
        """Driver errors become a 'down' status instead of propagating."""
        with patch("forum.routes.health.get_session") as mock_session:
            mock_session.return_value.__enter__.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))

            health = check_database_health()

            assert health["status"] == "down"
            assert "refused" in health["error"]


class TestExceptionHandlers:
    """Test global exception handlers."""

    @pytest.fixture
    def client(self):
        """Create test client that returns server errors instead of raising them."""
        return TestClient(app, raise_server_exceptions=False)

    def test_sqlalchemy_exception_handler(self, client):
        """Database errors are reported in the failure envelope without detail."""
        with patch("forum.routes.health.check_database_health") as mock_check:
            mock_check.side_effect = OperationalError("SELECT 1", {}, Exception("boom"))

            response = client.get("/health/")

            assert response.status_code == 500
            data = response.json()
            assert data["status"] is False
            assert data["errors"] == ["Database operation failed."]

    def test_general_exception_handler(self, client):
        """Unexpected errors never leak a traceback."""
        with patch("forum.routes.health.check_database_health") as mock_check:
            mock_check.side_effect = RuntimeError("kaboom")

            response = client.get("/health/")

            assert response.status_code == 500
            data = response.json()
            assert data["status"] is False
            assert "Traceback" not in response.text

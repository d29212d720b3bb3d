"""Tests for the FastAPI application factory module."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from pet_adoption_api.core import rate_limits
from pet_adoption_api.core.config import Settings
from pet_adoption_api.core.errors import AccountLockedError, InvalidTransitionError
from pet_adoption_api.main import create_app


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
    )


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self, test_settings, monkeypatch):
        monkeypatch.setattr(rate_limits, "_registry", rate_limits.build_limiters(test_settings))
        with patch("pet_adoption_api.main.get_settings", return_value=test_settings):
            app = create_app()

        @app.get("/raise/transition")
        async def raise_transition() -> dict:
            raise InvalidTransitionError("completed", "pending", [])

        @app.get("/raise/locked")
        async def raise_locked() -> dict:
            from datetime import UTC, datetime

            raise AccountLockedError(datetime(2026, 1, 1, tzinfo=UTC), 120)

        return app

    def test_app_is_created(self, app) -> None:
        assert app.title == "Pet Adoption API"

    def test_app_has_openapi_schema(self, app) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/openapi.json")
        assert response.status_code == 200
        schema = response.json()
        assert schema["info"]["title"] == "Pet Adoption API"
        assert "/api/v1/adoption-requests" in schema["paths"]

    def test_app_error_rendered_with_code_and_detail(self, app) -> None:
        client = TestClient(app)
        response = client.get("/raise/transition")
        assert response.status_code == 409
        assert response.json() == {
            "detail": "Cannot change status from 'completed' to 'pending' (no further transitions are allowed)",
            "code": "invalid_transition",
            "current_status": "completed",
            "target_status": "pending",
            "allowed": [],
        }

    def test_app_error_headers(self, app) -> None:
        client = TestClient(app)
        response = client.get("/raise/locked")
        assert response.status_code == 423
        assert response.headers["Retry-After"] == "120"
        assert response.json()["retry_after_seconds"] == 120

    def test_value_error_handler_registered(self, app) -> None:
        assert app.exception_handlers.get(ValueError) is not None


class TestAppLifespan:
    """Tests for lifespan management."""

    @pytest.mark.asyncio
    async def test_lifespan_init_and_dispose(self, test_settings) -> None:
        """Lifespan context manager initializes and disposes engine."""
        from pet_adoption_api.main import lifespan

        mock_app = AsyncMock()

        with (
            patch("pet_adoption_api.main.get_settings", return_value=test_settings),
            patch("pet_adoption_api.main.setup_logging") as mock_setup_logging,
            patch("pet_adoption_api.main.init_engine") as mock_init_engine,
            patch("pet_adoption_api.main.init_limiters") as mock_init_limiters,
            patch("pet_adoption_api.main.dispose_engine", new_callable=AsyncMock) as mock_dispose,
        ):
            async with lifespan(mock_app):
                mock_setup_logging.assert_called_once_with("INFO", log_dir=None)
                mock_init_engine.assert_called_once_with("sqlite+aiosqlite:///:memory:", echo=False)
                mock_init_limiters.assert_called_once_with(test_settings)

            mock_dispose.assert_awaited_once()

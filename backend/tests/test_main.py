"""Tests for the application factory and lifespan."""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from feedrelay.config import RelaySettings
from feedrelay.main import create_app

ORIGIN = "http://localhost:4200"


def _app():
    return create_app(RelaySettings(allowed_origin=ORIGIN, reconnect_delay=0.01, heartbeat_interval=None))


class TestCreateApp:
    """Tests for create_app."""

    def test_lifespan_starts_and_stops_sources(self):
        """Test that startup starts both sources and shutdown stops them."""
        app = _app()
        services = app.state.services

        with (
            patch.object(services.fetcher, "start", new=AsyncMock()) as fetch_start,
            patch.object(services.fetcher, "stop", new=AsyncMock()) as fetch_stop,
            patch.object(services.upstream, "start", new=AsyncMock()) as stream_start,
            patch.object(services.upstream, "stop", new=AsyncMock()) as stream_stop,
        ):
            with TestClient(app):
                fetch_start.assert_awaited_once()
                stream_start.assert_awaited_once()
                fetch_stop.assert_not_awaited()

            fetch_stop.assert_awaited_once()
            stream_stop.assert_awaited_once()

    def test_cors_allows_configured_origin(self):
        """Test that the configured origin gets CORS headers."""
        client = TestClient(_app())

        response = client.get("/api/stream/status", headers={"Origin": ORIGIN})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_cors_ignores_other_origins(self):
        """Test that other origins get no CORS grant."""
        client = TestClient(_app())

        response = client.get("/api/stream/status", headers={"Origin": "http://evil.example"})

        assert "access-control-allow-origin" not in response.headers

    def test_routes_registered(self):
        """Test that the streaming routes are mounted."""
        paths = {route.path for route in _app().routes}

        assert "/api/stream/market" in paths
        assert "/api/stream/status" in paths

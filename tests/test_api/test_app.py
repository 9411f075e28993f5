"""Tests for application start-up."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from disclosure_crawler.api.app import create_app
from disclosure_crawler.config.settings import get_settings


class TestLifespan:
    """Lifespan start-up and shutdown."""

    def test_metrics_server_not_started_by_app(self, monkeypatch):
        monkeypatch.setenv("METRICS_ENABLED", "true")
        get_settings.cache_clear()

        try:
            with patch("disclosure_crawler.observability.metrics.start_http_server") as start:
                with TestClient(create_app()) as client:
                    response = client.get("/")
        finally:
            get_settings.cache_clear()

        assert response.status_code == 200
        start.assert_not_called()

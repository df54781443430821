"""Tests for the Prometheus request middleware."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from wallet_ledger.metrics.middleware import PrometheusMiddleware


@pytest.fixture
def _app_with_metrics() -> tuple[FastAPI, CollectorRegistry]:
    registry = CollectorRegistry()
    app = FastAPI()
    app.add_middleware(PrometheusMiddleware, registry=registry)

    @app.get("/items/{txid}")
    async def item(txid: str) -> dict[str, str]:
        return {"txid": txid}

    return app, registry


class TestPrometheusMiddleware:
    def test_counts_by_route_template(self, _app_with_metrics: tuple) -> None:
        app, registry = _app_with_metrics
        client = TestClient(app)
        client.get("/items/aaa")
        client.get("/items/bbb")
        value = registry.get_sample_value(
            "http_request_total",
            {"method": "GET", "path": "/items/{txid}", "status_code": "200", "app": "wallet-ledger"},
        )
        assert value == 2.0

    def test_records_duration(self, _app_with_metrics: tuple) -> None:
        app, registry = _app_with_metrics
        TestClient(app).get("/items/aaa")
        count = registry.get_sample_value(
            "http_request_duration_seconds_count",
            {"method": "GET", "path": "/items/{txid}", "app": "wallet-ledger"},
        )
        assert count == 1.0

    def test_unmatched_path_uses_raw_path(self, _app_with_metrics: tuple) -> None:
        app, registry = _app_with_metrics
        TestClient(app).get("/nowhere")
        value = registry.get_sample_value(
            "http_request_total",
            {"method": "GET", "path": "/nowhere", "status_code": "404", "app": "wallet-ledger"},
        )
        assert value == 1.0

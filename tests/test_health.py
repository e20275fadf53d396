"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status, version, and database fields
  - database reports 'error' when the store cannot be reached
  - No authentication required
"""

from __future__ import annotations

from unittest.mock import patch

from api.main import API_VERSION


def test_health_returns_200(api_client):
    client, _, _ = api_client
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": API_VERSION, "database": "ok"}


def test_health_reports_unreachable_database(api_client):
    client, _, service = api_client
    with patch.object(service.users, "ping", return_value=False):
        data = client.get("/health").json()
    assert data["database"] == "error"


def test_health_no_auth_required(api_client):
    client, _, _ = api_client
    resp = client.get("/health", headers={})
    assert resp.status_code == 200

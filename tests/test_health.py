"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status and version fields
  - No session required
"""

from __future__ import annotations

from api.main import VERSION


def test_health_returns_200(client):
    """Health endpoint returns 200 with status and version."""
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == VERSION


def test_health_no_session_required(client):
    """Health endpoint is reachable without a session cookie."""
    client.cookies.clear()
    resp = client.get("/health")
    assert resp.status_code == 200

# =============================================
# File: tests/test_analytics_endpoints.py
# Purpose: Admin-gated analytics routes: auth, response shapes, store outages, dashboard page
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from ragdesk.db.models import AggregateStats, CategoryCount
from ragdesk.errors import StoreUnavailable
from ragdesk.services.auth import reset_authenticator

FLAGGED = [
    {"id": "b", "question": "Crypto limits?", "quality_label": "poor", "quality_score": 0.2,
     "needs_improvement": True, "timestamp": "2026-10-02T10:00:00Z"},
    {"id": "a", "question": "Overdraft?", "quality_label": "fair", "quality_score": 0.45,
     "needs_improvement": True, "timestamp": "2026-10-01T10:00:00Z"},
]


class _StubStore:
    def __init__(self, error=None):
        self.error = error
        self.limits = []

    def query_needs_improvement(self, limit):
        if self.error:
            raise self.error
        self.limits.append(limit)
        return FLAGGED[:limit]

    def query_aggregate_stats(self):
        if self.error:
            raise self.error
        return AggregateStats(
            total_queries=5,
            avg_latency=1274.0,
            quality_distribution={"good": 3, "fair": 1, "poor": 1},
            top_categories=[CategoryCount(name="Card Services", count=2)],
        )


def _mount_client(monkeypatch, store=None, login=True):
    monkeypatch.setenv("ADMIN_USERNAME", "admin")
    monkeypatch.setenv("ADMIN_PASSWORD", "admin")
    reset_authenticator()

    import ragdesk.routers.analytics as amod
    store = store or _StubStore()
    monkeypatch.setattr(amod, "get_store", lambda: store)

    from ragdesk.main import app
    client = TestClient(app)
    if login:
        r = client.post("/auth/login", json={"username": "admin", "password": "admin"})
        assert r.status_code == 200
    return client, store


def test_routes_require_admin_session(monkeypatch):
    client, _ = _mount_client(monkeypatch, login=False)
    assert client.get("/analytics/stats").status_code == 401
    assert client.get("/analytics/needs-improvement").status_code == 401
    assert client.get("/analytics").status_code == 401


def test_unauthenticated_body_uses_error_shape(monkeypatch):
    client, _ = _mount_client(monkeypatch, login=False)
    r = client.get("/analytics/stats")
    assert r.status_code == 401
    assert r.json() == {"error": "Authentication required"}


def test_needs_improvement_shape_and_limit(monkeypatch):
    client, store = _mount_client(monkeypatch)
    r = client.get("/analytics/needs-improvement", params={"limit": 1})
    assert r.status_code == 200
    body = r.json()
    assert list(body) == ["questions"]
    assert [q["id"] for q in body["questions"]] == ["b"]
    assert store.limits == [1]

    client.get("/analytics/needs-improvement")
    assert store.limits[-1] == 20


def test_needs_improvement_rejects_bad_limit(monkeypatch):
    client, _ = _mount_client(monkeypatch)
    assert client.get("/analytics/needs-improvement", params={"limit": 0}).status_code == 422
    assert client.get("/analytics/needs-improvement", params={"limit": "ten"}).status_code == 422


def test_stats_shape(monkeypatch):
    client, _ = _mount_client(monkeypatch)
    r = client.get("/analytics/stats")
    assert r.status_code == 200
    assert r.json() == {
        "total_queries": 5,
        "avg_latency": 1274.0,
        "quality_distribution": {"good": 3, "fair": 1, "poor": 1},
        "top_categories": [{"name": "Card Services", "count": 2}],
    }


def test_store_outage_reads_as_empty(monkeypatch):
    client, _ = _mount_client(monkeypatch, store=_StubStore(error=StoreUnavailable("refused")))
    r = client.get("/analytics/stats")
    assert r.status_code == 200
    assert r.json() == {
        "total_queries": 0,
        "avg_latency": 0.0,
        "quality_distribution": {"good": 0, "fair": 0, "poor": 0},
        "top_categories": [],
    }
    r = client.get("/analytics/needs-improvement")
    assert r.status_code == 200
    assert r.json() == {"questions": []}


def test_dashboard_page_renders(monkeypatch):
    client, _ = _mount_client(monkeypatch)
    r = client.get("/analytics")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    assert "/analytics/stats" in r.text
    assert "/analytics/needs-improvement" in r.text

# =============================================
# File: tests/test_metrics.py
# Purpose: /metrics counters for chat turns, upstream failures and analytics outcomes
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from ragdesk.db.models import AnalysisResult
from ragdesk.errors import StoreUnavailable, UpstreamError
from ragdesk.utils.metrics import reset as metrics_reset


class _Store:
    def __init__(self, fail=False):
        self.fail = fail

    def log_interaction(self, entry):
        if self.fail:
            raise StoreUnavailable("refused")


def _fair(question, answer):
    return AnalysisResult(quality_score=0.5, quality_label="fair", needs_improvement=True,
                          improvement_reason="vague")


def _mount_client(monkeypatch, run_flow=None, store=None):
    metrics_reset()
    import ragdesk.services.chat as chat_mod
    monkeypatch.setattr(chat_mod, "run_flow", run_flow or (lambda m, s: {"text": "ok"}))
    monkeypatch.setattr(chat_mod, "analyze", _fair)
    store = store or _Store()
    monkeypatch.setattr(chat_mod, "get_store", lambda: store)
    from ragdesk.main import app
    return TestClient(app)


def test_chat_counts_and_histogram(monkeypatch):
    client = _mount_client(monkeypatch)
    for _ in range(2):
        assert client.post("/chat", json={"message": "Hi"}).status_code == 200

    m = client.get("/metrics").json()
    assert m["counters"]["chat_requests_total"] == 2
    assert sum(m["chat_latency_ms"]["counts"]) == m["counters"]["chat_requests_total"]
    assert m["counters"]["analytics_logged_total"] == 2
    assert m["analytics"]["quality"]["fair"] == 2
    assert any(k == "POST /chat" for k in m["performance"]["endpoints"])


def test_upstream_errors_are_counted(monkeypatch):
    def _fail(message, session_id):
        raise UpstreamError("Flow API error: 500", 500)

    client = _mount_client(monkeypatch, run_flow=_fail)
    assert client.post("/chat", json={"message": "Hi"}).status_code == 500
    assert client.post("/chat", json={"message": ""}).status_code == 400

    c = client.get("/metrics").json()["counters"]
    assert c["chat_requests_total"] == 0
    assert c["chat_errors_total"] == 2
    assert c["upstream_errors_total"] == 1


def test_dropped_analytics_are_counted(monkeypatch):
    client = _mount_client(monkeypatch, store=_Store(fail=True))
    assert client.post("/chat", json={"message": "Hi"}).status_code == 200

    m = client.get("/metrics").json()
    assert m["counters"]["analytics_dropped_total"] == 1
    assert m["analytics"]["drop_reasons"] == {"store_unavailable": 1}

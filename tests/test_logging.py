# =============================================
# File: tests/test_logging.py
# Purpose: Structured JSON logs for chat requests and background analytics outcomes
# =============================================
import sys, os, json
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from ragdesk.db.models import AnalysisResult
from ragdesk.errors import AnalysisUnavailable


class _MemoryStore:
    def __init__(self):
        self.entries = []

    def log_interaction(self, entry):
        self.entries.append(entry)


def _good(question, answer):
    return AnalysisResult(quality_score=0.9, quality_label="good", needs_improvement=False)


def _mount_client(monkeypatch, analyze=_good):
    import ragdesk.services.chat as chat_mod
    monkeypatch.setattr(chat_mod, "run_flow", lambda m, s: {"text": "Weekly payments."})
    monkeypatch.setattr(chat_mod, "analyze", analyze)
    monkeypatch.setattr(chat_mod, "get_store", lambda: _MemoryStore())
    from ragdesk.main import app
    return TestClient(app)


def _find_json_events(caplog, name: str):
    found = []
    for rec in caplog.records:
        try:
            data = json.loads(rec.getMessage())
        except (ValueError, TypeError):
            continue
        if isinstance(data, dict) and data.get("event") == name:
            found.append(data)
    return found


def test_structured_log_on_chat(monkeypatch, caplog):
    caplog.set_level("INFO", logger="ragdesk")
    client = _mount_client(monkeypatch)

    r = client.post("/chat", json={"message": "How often are payments processed?", "session_id": "tab-9"})
    assert r.status_code == 200

    events = [e for e in _find_json_events(caplog, "request.completed") if e["path"] == "/chat"]
    assert events
    evt = events[-1]
    assert evt["request_id"] == r.headers["X-Request-ID"]
    assert evt["status"] == 200
    assert isinstance(evt["latency_ms"], int)
    assert evt["session_id"] == "tab-9"
    assert evt["interaction_id"] == r.json()["interaction_id"]
    assert len(evt["qhash"]) == 10
    # raw question text never reaches the request log
    assert "payments processed" not in json.dumps(evt)

    logged = _find_json_events(caplog, "analytics.logged")
    assert logged and logged[-1]["interaction_id"] == r.json()["interaction_id"]
    assert logged[-1]["quality_label"] == "good"


def test_dropped_analytics_is_logged(monkeypatch, caplog):
    caplog.set_level("INFO", logger="ragdesk")

    def _unavailable(question, answer):
        raise AnalysisUnavailable("OPENAI_API_KEY is not configured")

    client = _mount_client(monkeypatch, analyze=_unavailable)
    r = client.post("/chat", json={"message": "Hi"})
    assert r.status_code == 200

    dropped = _find_json_events(caplog, "analytics.dropped")
    assert dropped
    assert dropped[-1]["reason"] == "analysis_unavailable"
    assert dropped[-1]["interaction_id"] == r.json()["interaction_id"]


def test_error_status_in_request_log(monkeypatch, caplog):
    caplog.set_level("INFO", logger="ragdesk")
    client = _mount_client(monkeypatch)
    r = client.post("/chat", json={"message": "  "})
    assert r.status_code == 400

    evt = [e for e in _find_json_events(caplog, "request.completed") if e["path"] == "/chat"][-1]
    assert evt["status"] == 400
    assert evt["error_status"] == 400

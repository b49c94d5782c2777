# =============================================
# File: ragdesk/utils/metrics.py
# Purpose: In-process counters for chat traffic and background analytics, exposed at /metrics
# =============================================
from __future__ import annotations
import bisect
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List

_lock = threading.Lock()

COUNTERS = (
    "chat_requests_total",
    "chat_errors_total",
    "upstream_errors_total",
    "analytics_logged_total",
    "analytics_dropped_total",
)
_counters: Dict[str, int] = dict.fromkeys(COUNTERS, 0)

# reason -> count, e.g. "analysis_unavailable", "store_unavailable"
_drop_reasons: Dict[str, int] = {}
_quality_counts: Dict[str, int] = {"good": 0, "fair": 0, "poor": 0}

# Upper bounds (ms) of the chat latency buckets; flow round trips can take up to a minute
LATENCY_BUCKETS_MS: List[int] = [250, 500, 1000, 2000, 5000, 10000, 30000, 60000]
_latency_counts: List[int] = [0] * (len(LATENCY_BUCKETS_MS) + 1)  # trailing slot is +Inf

ENDPOINT_WINDOW = 1000
_endpoint_samples: Dict[str, Deque[float]] = {}
_endpoint_hits: Dict[str, int] = {}


def _percentile(values, q: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    return ordered[int(q * (len(ordered) - 1))]


def _mean(values) -> float:
    return sum(values) / len(values) if values else 0.0


def record_chat(latency_ms: int) -> None:
    with _lock:
        _counters["chat_requests_total"] += 1
        _latency_counts[bisect.bisect_left(LATENCY_BUCKETS_MS, int(latency_ms))] += 1


def record_chat_error(upstream: bool) -> None:
    with _lock:
        _counters["chat_errors_total"] += 1
        if upstream:
            _counters["upstream_errors_total"] += 1


def record_analytics_logged(quality_label: str) -> None:
    with _lock:
        _counters["analytics_logged_total"] += 1
        if quality_label in _quality_counts:
            _quality_counts[quality_label] += 1


def record_analytics_dropped(reason: str) -> None:
    with _lock:
        _counters["analytics_dropped_total"] += 1
        _drop_reasons[reason] = _drop_reasons.get(reason, 0) + 1


def record_endpoint(method: str, path: str, latency_ms: float) -> None:
    """Keep the last ENDPOINT_WINDOW latencies per "METHOD /path"."""
    key = f"{method.upper()} {path}"
    with _lock:
        _endpoint_hits[key] = _endpoint_hits.get(key, 0) + 1
        if key not in _endpoint_samples:
            _endpoint_samples[key] = deque(maxlen=ENDPOINT_WINDOW)
        _endpoint_samples[key].append(float(latency_ms))


def snapshot() -> Dict[str, Any]:
    with _lock:
        endpoints = {
            key: {
                "count": _endpoint_hits.get(key, 0),
                "avg_latency_ms": round(_mean(samples), 2),
                "p95_latency_ms": _percentile(samples, 0.95),
            }
            for key, samples in _endpoint_samples.items()
        }
        return {
            "counters": dict(_counters),
            "analytics": {
                "quality": dict(_quality_counts),
                "drop_reasons": dict(_drop_reasons),
            },
            "chat_latency_ms": {
                "buckets": [*LATENCY_BUCKETS_MS, "+Inf"],
                "counts": list(_latency_counts),
            },
            "performance": {
                "endpoints": endpoints,
                "generated_at": time.time(),
            },
        }


def reset() -> None:
    """Zero everything (tests)."""
    with _lock:
        for name in COUNTERS:
            _counters[name] = 0
        for label in _quality_counts:
            _quality_counts[label] = 0
        _drop_reasons.clear()
        _latency_counts[:] = [0] * len(_latency_counts)
        _endpoint_samples.clear()
        _endpoint_hits.clear()

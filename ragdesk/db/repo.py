# =============================================
# File: ragdesk/db/repo.py
# Purpose: OpenSearch bootstrap (client from env, index schema) and the analytics store adapter
# =============================================
from __future__ import annotations
import threading
from typing import Any, Dict, List, Optional

from loguru import logger
from opensearchpy import OpenSearch
from opensearchpy.exceptions import NotFoundError, RequestError, TransportError

from ragdesk.config import Settings, load_settings
from ragdesk.db.models import AggregateStats, CategoryCount, InteractionEntry
from ragdesk.errors import StoreUnavailable

MAX_QUERY_LIMIT = 500
DEFAULT_TOP_CATEGORIES = 10

INDEX_BODY: Dict[str, Any] = {
    "settings": {
        "number_of_shards": 1,
        "number_of_replicas": 0,
    },
    "mappings": {
        "properties": {
            "id": {"type": "keyword"},
            "session_id": {"type": "keyword"},
            "question": {
                "type": "text",
                "fields": {"keyword": {"type": "keyword", "ignore_above": 512}},
            },
            "answer": {
                "type": "text",
                "fields": {"keyword": {"type": "keyword", "ignore_above": 2048}},
            },
            "timestamp": {"type": "date"},
            "latency_ms": {"type": "integer"},
            "quality_score": {"type": "float"},
            "quality_label": {"type": "keyword"},
            "needs_improvement": {"type": "boolean"},
            "improvement_reason": {"type": "text"},
            "category": {"type": "keyword"},
            "subcategory": {"type": "keyword"},
            "topics": {"type": "keyword"},
            "question_type": {"type": "keyword"},
            "question_complexity": {"type": "keyword"},
            "answer_length": {"type": "integer"},
            "has_citations": {"type": "boolean"},
            "confidence_expressed": {"type": "boolean"},
            "sources": {
                "type": "nested",
                "properties": {
                    "filename": {"type": "keyword"},
                    "relevance_score": {"type": "float"},
                },
            },
            "model_used": {"type": "keyword"},
            "flow_id": {"type": "keyword"},
        }
    },
}


def build_client(settings: Settings) -> OpenSearch:
    auth = None
    if settings.opensearch_user:
        auth = (settings.opensearch_user, settings.opensearch_password)
    return OpenSearch(
        hosts=[settings.opensearch_url],
        http_auth=auth,
        verify_certs=settings.opensearch_verify_certs,
        ssl_show_warn=False,
        timeout=10,
    )


class AnalyticsStore:
    """
    Thin adapter over the search engine.
    Owns the index schema and the query/aggregation shapes; everything else
    (scoring, relevance, storage) is the engine's job.
    """

    def __init__(self, client: Any, index: str):
        self.client = client
        self.index = index
        self._ensured = False
        self._lock = threading.Lock()

    # ---------- schema ----------

    def ensure_index(self) -> bool:
        """Create the index with the analytics mapping if missing. True when created."""
        try:
            if self.client.indices.exists(index=self.index):
                return False
            self.client.indices.create(index=self.index, body=INDEX_BODY)
            logger.info(f"[store] created index {self.index}")
            return True
        except RequestError as e:
            # another worker or the setup CLI created it after our exists() check
            if e.error == "resource_already_exists_exception":
                logger.info(f"[store] index {self.index} already created elsewhere")
                return False
            raise StoreUnavailable(f"Search engine error while creating index: {e}") from e
        except TransportError as e:
            raise StoreUnavailable(f"Search engine error while creating index: {e}") from e

    def _ensure_once(self) -> None:
        # Without the explicit mapping the engine would guess types (category as text)
        # and the terms aggregations would break.
        if self._ensured:
            return
        with self._lock:
            if not self._ensured:
                self.ensure_index()
                self._ensured = True

    # ---------- writes ----------

    def log_interaction(self, entry: InteractionEntry) -> None:
        """Upsert by entry id; writing the same id twice leaves one document."""
        self._ensure_once()
        try:
            self.client.index(
                index=self.index,
                id=entry.id,
                body=entry.to_document(),
                refresh=True,
            )
        except TransportError as e:
            raise StoreUnavailable(f"Search engine unavailable: {e}") from e

    # ---------- reads ----------

    def query_needs_improvement(self, limit: int = 20) -> List[Dict[str, Any]]:
        size = max(1, min(int(limit), MAX_QUERY_LIMIT))
        body = {
            "size": size,
            "query": {"term": {"needs_improvement": True}},
            "sort": [{"timestamp": {"order": "desc"}}],
        }
        try:
            resp = self.client.search(index=self.index, body=body)
        except NotFoundError:
            return []
        except TransportError as e:
            raise StoreUnavailable(f"Search engine unavailable: {e}") from e
        hits = (resp.get("hits") or {}).get("hits") or []
        return [h.get("_source") or {} for h in hits]

    def query_aggregate_stats(self, top_n: int = DEFAULT_TOP_CATEGORIES) -> AggregateStats:
        body = {
            "size": 0,
            "track_total_hits": True,
            "aggs": {
                "avg_latency": {"avg": {"field": "latency_ms"}},
                "quality_distribution": {"terms": {"field": "quality_label", "size": 3}},
                "top_categories": {
                    "terms": {
                        "field": "category",
                        "size": max(1, int(top_n)),
                        "order": [{"_count": "desc"}, {"_key": "asc"}],
                    }
                },
            },
        }
        try:
            resp = self.client.search(index=self.index, body=body)
        except NotFoundError:
            return AggregateStats.empty()
        except TransportError as e:
            raise StoreUnavailable(f"Search engine unavailable: {e}") from e
        return _parse_stats(resp)


def _parse_stats(resp: Dict[str, Any]) -> AggregateStats:
    total = (resp.get("hits") or {}).get("total") or 0
    if isinstance(total, dict):
        total = total.get("value") or 0
    total = int(total)
    if total == 0:
        return AggregateStats.empty()

    aggs = resp.get("aggregations") or {}
    avg = (aggs.get("avg_latency") or {}).get("value")

    dist = {"good": 0, "fair": 0, "poor": 0}
    for b in (aggs.get("quality_distribution") or {}).get("buckets") or []:
        if b.get("key") in dist:
            dist[b["key"]] = int(b.get("doc_count") or 0)

    cats = [
        CategoryCount(name=str(b.get("key")), count=int(b.get("doc_count") or 0))
        for b in (aggs.get("top_categories") or {}).get("buckets") or []
    ]
    return AggregateStats(
        total_queries=total,
        avg_latency=float(avg or 0.0),
        quality_distribution=dist,
        top_categories=cats,
    )


# Process-wide adapter (built lazily from env)
_store: Optional[AnalyticsStore] = None
_store_lock = threading.Lock()


def get_store() -> AnalyticsStore:
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                settings = load_settings()
                _store = AnalyticsStore(build_client(settings), settings.opensearch_index)
    return _store


def reset_store() -> None:
    """For tests: drop the cached adapter."""
    global _store
    _store = None

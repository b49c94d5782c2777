# =============================================
# File: ragdesk/cli/setup_index.py
# Purpose: One-time provisioning of the analytics index (schema + optional demo entries).
# Usage:
#   python -m ragdesk.cli.setup_index --samples
#   python -m ragdesk.cli.setup_index --index rag_analytics --recreate
# =============================================
from __future__ import annotations
import argparse
import sys
from datetime import datetime, timedelta, timezone
from typing import List

from opensearchpy.exceptions import TransportError

from ragdesk.config import load_settings
from ragdesk.db.models import InteractionEntry
from ragdesk.db.repo import AnalyticsStore, build_client
from ragdesk.errors import StoreUnavailable


def sample_entries(now: datetime | None = None) -> List[InteractionEntry]:
    """Five demo interactions with fixed ids, so re-running only overwrites them."""
    now = now or datetime.now(timezone.utc)
    rows = [
        dict(
            id="sample-1",
            question="What is the daily ATM limit in Japan?",
            answer="The daily ATM withdrawal limit in Japan is $500 USD. Per-transaction limit is ¥50,000. "
                   "Use 7-Eleven or JP Bank ATMs for best compatibility.",
            latency_ms=1250, quality_score=0.92, quality_label="good", needs_improvement=False,
            category="ATM Services", subcategory="International", topics=["ATM", "Japan", "limits"],
            question_type="factual", question_complexity="simple",
            has_citations=True, confidence_expressed=True,
        ),
        dict(
            id="sample-2",
            question="How do I report a stolen card?",
            answer="To report a stolen card: 1) Lock your card in the app under Cards > My Cards > Lock Card. "
                   "2) Call the 24/7 hotline. Card deactivation happens within 60 seconds of reporting.",
            latency_ms=1800, quality_score=0.88, quality_label="good", needs_improvement=False,
            category="Card Services", subcategory="Lost/Stolen", topics=["stolen card", "report", "security"],
            question_type="procedural", question_complexity="simple",
            has_citations=True, confidence_expressed=True,
        ),
        dict(
            id="sample-3",
            question="What are the cryptocurrency trading limits?",
            answer="I could not find specific information about cryptocurrency trading in the provided documents.",
            latency_ms=980, quality_score=0.25, quality_label="poor", needs_improvement=True,
            improvement_reason="Question about cryptocurrency not covered in the knowledge base",
            category="General", topics=["cryptocurrency", "trading"],
            question_type="factual", question_complexity="simple",
            has_citations=False, confidence_expressed=True,
        ),
        dict(
            id="sample-4",
            question="How long does international wire transfer take?",
            answer="International wire transfers via SWIFT take 1-5 business days depending on the destination. "
                   "The fee is $45 for outgoing and $15 for incoming transfers.",
            latency_ms=1450, quality_score=0.85, quality_label="good", needs_improvement=False,
            category="Transfers", subcategory="Wire", topics=["wire transfer", "international", "SWIFT"],
            question_type="factual", question_complexity="simple",
            has_citations=True, confidence_expressed=True,
        ),
        dict(
            id="sample-5",
            question="What happens if I exceed my overdraft limit?",
            answer="The information about exceeding overdraft limits is unclear in the current documents.",
            latency_ms=890, quality_score=0.40, quality_label="fair", needs_improvement=True,
            improvement_reason="Answer is vague - needs more specific information about overdraft consequences",
            category="Account Services", subcategory="Overdraft", topics=["overdraft", "limits", "fees"],
            question_type="analytical", question_complexity="moderate",
            has_citations=False, confidence_expressed=True,
        ),
    ]
    entries = []
    for i, row in enumerate(rows):
        entries.append(InteractionEntry(
            session_id="demo-session",
            timestamp=now - timedelta(hours=i),
            answer_length=len(row["answer"]),
            **row,
        ))
    return entries


def setup(store: AnalyticsStore, recreate: bool = False, samples: bool = False) -> dict:
    """Create the index (optionally dropping it first) and load demo data. Returns a summary."""
    dropped = False
    if recreate and store.client.indices.exists(index=store.index):
        store.client.indices.delete(index=store.index)
        dropped = True
    created = store.ensure_index()
    loaded = 0
    if samples:
        for entry in sample_entries():
            store.log_interaction(entry)
            loaded += 1
    return {"dropped": dropped, "created": created, "samples": loaded}


def main(argv=None):
    settings = load_settings()
    ap = argparse.ArgumentParser(description="Create the analytics index in OpenSearch.")
    ap.add_argument("--index", default=settings.opensearch_index, help=f"Index name (default: {settings.opensearch_index})")
    ap.add_argument("--samples", action="store_true", help="Load five demo interactions")
    ap.add_argument("--recreate", action="store_true", help="Drop the index first (destroys logged data)")
    args = ap.parse_args(argv)

    client = build_client(settings)
    try:
        info = client.info()
    except TransportError as e:
        print(f"[ERR] Cannot reach OpenSearch at {settings.opensearch_url}: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"[OK] Connected to OpenSearch {info.get('version', {}).get('number', '?')}")

    store = AnalyticsStore(client, args.index)
    try:
        summary = setup(store, recreate=args.recreate, samples=args.samples)
    except (StoreUnavailable, TransportError) as e:
        print(f"[ERR] Setup failed: {e}", file=sys.stderr)
        sys.exit(1)

    if summary["dropped"]:
        print(f"[OK] Dropped index '{args.index}'")
    print(f"[OK] Index '{args.index}' " + ("created" if summary["created"] else "already exists"))
    if args.samples:
        print(f"[OK] Loaded {summary['samples']} sample entries")


if __name__ == "__main__":
    main()

# =============================================
# File: ragdesk/routers/analytics.py
# Purpose: Admin-only analytics: flagged questions, aggregate stats, HTML dashboard
# =============================================
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from loguru import logger

from ragdesk.db.models import AggregateStats
from ragdesk.db.repo import get_store
from ragdesk.errors import StoreUnavailable
from ragdesk.services.auth import require_admin

router = APIRouter(prefix="/analytics", tags=["analytics"], dependencies=[Depends(require_admin)])

BASE_DIR = Path(__file__).resolve().parents[1]
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


@router.get("/needs-improvement")
def needs_improvement(request: Request, limit: int = Query(20, ge=1, le=500)) -> Dict[str, List[Dict[str, Any]]]:
    """Most recent entries flagged for review, newest first."""
    try:
        questions = get_store().query_needs_improvement(limit)
    except StoreUnavailable as e:
        logger.error(f"[analytics] needs-improvement read failed: {e.message}")
        request.state.log_context = {"store_unavailable": True}
        questions = []
    return {"questions": questions}


@router.get("/stats", response_model=AggregateStats)
def stats(request: Request) -> AggregateStats:
    """Totals, mean latency, label distribution and top categories, computed by the index."""
    try:
        return get_store().query_aggregate_stats()
    except StoreUnavailable as e:
        logger.error(f"[analytics] stats read failed: {e.message}")
        request.state.log_context = {"store_unavailable": True}
        return AggregateStats.empty()


@router.get("", response_class=HTMLResponse, include_in_schema=False)
def dashboard(request: Request):
    """
    Render the HTML dashboard. The page fetches /analytics/stats and
    /analytics/needs-improvement with the same session cookie.
    """
    return templates.TemplateResponse(
        request,
        "analytics.html",
        {
            "stats_endpoint": "/analytics/stats",
            "flagged_endpoint": "/analytics/needs-improvement?limit=50",
            "refresh_interval_ms": 30000,
            "app_name": "ragdesk",
        },
    )

# =============================================
# File: ragdesk/routers/metrics.py
# Purpose: Expose in-process chat/analytics counters as JSON
# =============================================
from typing import Any, Dict

from fastapi import APIRouter

from ragdesk.utils import metrics

router = APIRouter(prefix="/metrics", tags=["ops"])


@router.get("")
def read_metrics() -> Dict[str, Any]:
    """Chat volume, upstream failures, analytics logged/dropped, latency histogram."""
    return metrics.snapshot()

# =============================================
# File: ragdesk/services/chat.py
# Purpose: Chat gateway: validate -> flow call -> answer extraction -> background analysis + logging
# =============================================
from __future__ import annotations
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from loguru import logger

from ..config import load_settings
from ..db.models import AnalysisResult, InteractionEntry, Source
from ..db.repo import get_store
from ..errors import AnalysisUnavailable, InvalidRequest, StoreUnavailable
from ..utils import slog
from ..utils.extract import extract_answer
from ..utils.metrics import record_analytics_dropped, record_analytics_logged
from .analysis import analyze
from .flow import run_flow

Dispatch = Callable[..., Any]

# Background analysis runs here when no request-scoped dispatcher is given
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="ragdesk-analytics")


@dataclass
class ChatResult:
    answer: str
    session_id: str
    latency_ms: int
    interaction_id: str


@dataclass(frozen=True)
class InteractionContext:
    """Everything the background step needs to judge and log one turn."""
    interaction_id: str
    session_id: str
    question: str
    answer: str
    latency_ms: int
    flow_id: Optional[str] = None
    sources: List[Source] = field(default_factory=list)


def _submit(fn: Callable[..., Any], *args: Any) -> None:
    _executor.submit(fn, *args)


def handle(message: Optional[str], session_id: Optional[str] = None, dispatch: Optional[Dispatch] = None) -> ChatResult:
    """
    Forward one chat message to the flow and return its answer right away.
    Quality analysis + logging is handed to `dispatch` and never awaited.
    """
    if not message or not message.strip():
        raise InvalidRequest("Message is required")

    t0 = time.perf_counter()
    sid = (session_id or "").strip() or str(uuid.uuid4())

    data = run_flow(message, sid)
    answer = extract_answer(data)
    latency_ms = int((time.perf_counter() - t0) * 1000)

    interaction_id = str(uuid.uuid4())
    ctx = InteractionContext(
        interaction_id=interaction_id,
        session_id=sid,
        question=message,
        answer=answer,
        latency_ms=latency_ms,
        flow_id=load_settings().flow_id or None,
    )
    (dispatch or _submit)(analyze_and_log, ctx)

    return ChatResult(
        answer=answer,
        session_id=sid,
        latency_ms=latency_ms,
        interaction_id=interaction_id,
    )


def build_entry(ctx: InteractionContext, analysis: AnalysisResult, now: Optional[datetime] = None) -> InteractionEntry:
    return InteractionEntry(
        id=ctx.interaction_id,
        session_id=ctx.session_id,
        question=ctx.question,
        answer=ctx.answer,
        timestamp=now or datetime.now(timezone.utc),
        latency_ms=max(0, ctx.latency_ms),
        quality_score=analysis.quality_score,
        quality_label=analysis.quality_label,
        needs_improvement=analysis.needs_improvement,
        improvement_reason=analysis.improvement_reason if analysis.needs_improvement else None,
        category=analysis.category,
        subcategory=analysis.subcategory,
        topics=list(analysis.topics),
        question_type=analysis.question_type,
        question_complexity=analysis.question_complexity,
        answer_length=len(ctx.answer),
        has_citations=analysis.has_citations,
        confidence_expressed=analysis.confidence_expressed,
        sources=list(ctx.sources),
        model_used=analysis.model_used,
        flow_id=ctx.flow_id,
    )


def _drop(ctx: InteractionContext, reason: str, err: Exception) -> None:
    record_analytics_dropped(reason)
    slog.log_event(
        "analytics.dropped",
        level=logging.WARNING,
        interaction_id=ctx.interaction_id,
        session_id=ctx.session_id,
        reason=reason,
        error=str(err),
    )


def analyze_and_log(ctx: InteractionContext) -> Optional[InteractionEntry]:
    """
    Background step for one chat turn. Never raises: every failure is logged
    and the entry is dropped whole.
    """
    try:
        analysis = analyze(ctx.question, ctx.answer)
        entry = build_entry(ctx, analysis)
        get_store().log_interaction(entry)
    except AnalysisUnavailable as e:
        logger.warning(f"[analytics] analysis unavailable for {ctx.interaction_id}: {e.message}")
        _drop(ctx, "analysis_unavailable", e)
        return None
    except StoreUnavailable as e:
        logger.warning(f"[analytics] store unavailable for {ctx.interaction_id}: {e.message}")
        _drop(ctx, "store_unavailable", e)
        return None
    except Exception as e:
        logger.exception(f"[analytics] unexpected failure for {ctx.interaction_id}")
        _drop(ctx, "unexpected", e)
        return None

    record_analytics_logged(entry.quality_label)
    slog.log_event(
        "analytics.logged",
        interaction_id=entry.id,
        session_id=entry.session_id,
        quality_label=entry.quality_label,
        category=entry.category,
        needs_improvement=entry.needs_improvement,
    )
    logger.info(f"[analytics] logged {entry.id}: quality={entry.quality_label} category={entry.category}")
    return entry

# =============================================
# File: ragdesk/utils/slog.py
# Purpose: JSON structured logging for requests and analytics events
# =============================================
from __future__ import annotations
import hashlib
import json
import logging
import os
import uuid
from typing import Any, Dict, Optional

from fastapi import Request

LOGGER_NAME = "ragdesk"


def _build_logger() -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    if log.handlers:
        return log
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    log.setLevel(getattr(logging, level, logging.INFO))
    handler = logging.StreamHandler()
    # records are pre-formatted JSON strings
    handler.setFormatter(logging.Formatter("%(message)s"))
    log.addHandler(handler)
    log.propagate = True  # caplog listens on the root logger
    return log


_logger = _build_logger()


def qhash(text: str) -> str:
    """Short hash of a normalized question, so raw user text stays out of request logs."""
    canonical = " ".join((text or "").lower().split())
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:10]


def new_request_id() -> str:
    return uuid.uuid4().hex


def chat_context(
    message: str,
    session_id: Optional[str] = None,
    interaction_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Log context a chat router attaches to request.state.log_context."""
    ctx: Dict[str, Any] = {"qhash": qhash(message)}
    if session_id:
        ctx["session_id"] = session_id
    if interaction_id:
        ctx["interaction_id"] = interaction_id
    return ctx


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    _logger.log(level, json.dumps({"event": event, **fields}, ensure_ascii=False, default=str))


def request_context(request: Request) -> Dict[str, Any]:
    """Whatever the route stored on request.state.log_context (empty if nothing)."""
    return dict(getattr(request.state, "log_context", None) or {})


def finalize_request_log(
    request: Request,
    request_id: str,
    latency_ms: int,
    status: Optional[int] = None,
    error: Optional[BaseException] = None,
) -> None:
    """
    One line per request. `status` is None when the app raised instead of
    answering; that case is logged as request.error at ERROR level.
    """
    fields: Dict[str, Any] = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "latency_ms": latency_ms,
        "client_ip": request.client.host if request.client else "",
    }
    fields.update(request_context(request))
    if status is None:
        fields["error"] = str(error) if error else "unhandled"
        log_event("request.error", logging.ERROR, **fields)
        return
    fields["status"] = status
    level = logging.WARNING if status >= 500 else logging.INFO
    log_event("request.completed", level, **fields)

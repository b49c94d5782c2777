# =============================================
# File: ragdesk/routers/chat.py
# Purpose: POST /chat: forward a message to the flow, log quality analysis in the background
# =============================================
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Request
from pydantic import BaseModel, Field

from ragdesk.errors import RagdeskError, UpstreamError
from ragdesk.services import chat as chat_service
from ragdesk.utils import slog
from ragdesk.utils.metrics import record_chat, record_chat_error

router = APIRouter(tags=["chat"])


class ChatRequest(BaseModel):
    """
    Incoming chat turn.
    - message: the user's text; blank messages are rejected with 400 by the gateway.
    - session_id: optional conversation id; generated when missing.
    """
    message: Optional[str] = None
    session_id: Optional[str] = Field(None, max_length=128)


class ChatResponse(BaseModel):
    answer: str
    session_id: str
    latency_ms: int
    interaction_id: str


@router.post("/chat", response_model=ChatResponse)
def post_chat(req: ChatRequest, request: Request, background_tasks: BackgroundTasks) -> ChatResponse:
    request.state.log_context = slog.chat_context(req.message or "", req.session_id)
    try:
        result = chat_service.handle(
            req.message,
            req.session_id,
            dispatch=background_tasks.add_task,
        )
    except RagdeskError as e:
        record_chat_error(upstream=isinstance(e, UpstreamError))
        request.state.log_context["error_status"] = e.status_code
        raise

    record_chat(result.latency_ms)
    request.state.log_context.update({
        "session_id": result.session_id,
        "interaction_id": result.interaction_id,
        "flow_latency_ms": result.latency_ms,
    })
    return ChatResponse(
        answer=result.answer,
        session_id=result.session_id,
        latency_ms=result.latency_ms,
        interaction_id=result.interaction_id,
    )

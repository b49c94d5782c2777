# =============================================
# File: ragdesk/utils/prompting.py
# Purpose: Build the JSON-structured evaluation messages for the quality analyzer
# =============================================
from __future__ import annotations
import re
from typing import Dict, List

_WHITESPACE_RE = re.compile(r"[ \t]+")

MAX_QUESTION_CHARS = 2000
MAX_ANSWER_CHARS = 6000

SYS_PROMPT = (
    "You are a strict reviewer of answers produced by a retrieval-augmented support assistant. "
    "Judge how well the ANSWER addresses the QUESTION and classify the question. "
    "Output MUST be a single valid JSON object and nothing else."
)

USER_TEMPLATE = (
    "QUESTION:\n"
    "{question}\n\n"
    "ANSWER:\n"
    "{answer}\n\n"
    "Return ONLY a JSON object with these fields:\n"
    "- \"quality_score\": number between 0 and 1 (1 = complete, accurate, directly useful).\n"
    "- \"needs_improvement\": true if the knowledge base or the answer should be improved.\n"
    "- \"improvement_reason\": short sentence explaining what is missing (empty if nothing).\n"
    "- \"category\": short business category of the question (e.g. \"Card Services\").\n"
    "- \"subcategory\": optional finer category.\n"
    "- \"topics\": up to 5 short keywords.\n"
    "- \"question_type\": one of factual, procedural, analytical, comparative, troubleshooting, conversational, other.\n"
    "- \"question_complexity\": one of simple, moderate, complex.\n"
    "- \"has_citations\": true if the answer cites documents or sources.\n"
    "- \"confidence_expressed\": true if the answer states its certainty or its limits.\n"
    "Answers that say the information is unavailable score below 0.4."
)


def _clip(text: str, max_chars: int) -> str:
    text = _WHITESPACE_RE.sub(" ", (text or "").strip())
    if len(text) > max_chars:
        return text[:max_chars] + "…"
    return text


def build_analysis_messages(question: str, answer: str) -> List[Dict]:
    """Messages for the OpenAI Chat Completions API (json_object response format)."""
    user = USER_TEMPLATE.format(
        question=_clip(question, MAX_QUESTION_CHARS),
        answer=_clip(answer, MAX_ANSWER_CHARS) or "(empty answer)",
    )
    return [
        {"role": "system", "content": SYS_PROMPT},
        {"role": "user", "content": user},
    ]

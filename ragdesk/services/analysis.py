# =============================================
# File: ragdesk/services/analysis.py
# Purpose: LLM quality judgment of a question/answer pair (OpenAI, json_object) + coercion
# =============================================
from __future__ import annotations
import json
import math
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from openai import OpenAI

from ..config import Settings, load_settings
from ..db.models import AnalysisResult, quality_label_for
from ..errors import AnalysisUnavailable
from ..utils.prompting import build_analysis_messages

DEFAULT_SCORE = 0.5
DEFAULT_CATEGORY = "General"
MAX_LABEL_CHARS = 100
MAX_REASON_CHARS = 500
MAX_TOPICS = 10

QUESTION_TYPES = {
    "factual", "procedural", "analytical", "comparative",
    "troubleshooting", "conversational", "other",
}
COMPLEXITIES = {"simple", "moderate", "complex"}

_TRUE = {"true", "yes", "1", "y"}
_FALSE = {"false", "no", "0", "n", ""}


def _openai_client(settings: Settings) -> OpenAI:
    return OpenAI(api_key=settings.openai_api_key)


def _chat_completion_with_retry(client, messages, settings: Settings) -> Tuple[str | None, str | None]:
    """
    Call the model up to analysis_max_retries+1 times with analysis_timeout_s each.
    Returns (text, model) or (None, None) if every attempt fails.
    """
    attempts = max(1, settings.analysis_max_retries + 1)
    for attempt in range(1, attempts + 1):
        try:
            resp = client.chat.completions.create(
                model=settings.analysis_model,
                response_format={"type": "json_object"},
                temperature=0,
                max_tokens=400,
                messages=messages,
                timeout=settings.analysis_timeout_s,
            )
            text = (resp.choices[0].message.content or "").strip()
            return text, getattr(resp, "model", settings.analysis_model)
        except Exception as e:
            logger.warning(f"[analysis] attempt {attempt}/{attempts} failed: {e}")
    return None, None


def _parse_llm_json(text: str) -> Optional[Dict[str, Any]]:
    """Tolerant to small wrappers (code fences, prose) around the JSON object."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


# ---------- coercion ----------

def _score(value: Any) -> float:
    if isinstance(value, bool):
        return DEFAULT_SCORE
    try:
        score = float(value)
    except (TypeError, ValueError):
        return DEFAULT_SCORE
    if math.isnan(score):
        return DEFAULT_SCORE
    return min(1.0, max(0.0, score))


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
    return False


def _short_text(value: Any, max_chars: int = MAX_LABEL_CHARS) -> Optional[str]:
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        return None
    text = " ".join(str(value).split())
    return text[:max_chars] if text else None


def _choice(value: Any, allowed: set, default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


def _topics(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    out: List[str] = []
    seen = set()
    for item in value:
        text = _short_text(item, 50)
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        out.append(text)
        if len(out) >= MAX_TOPICS:
            break
    return out


def coerce_analysis(raw: Dict[str, Any], model: Optional[str] = None) -> AnalysisResult:
    """
    Turn whatever the model returned into a well-formed AnalysisResult.
    The label is always recomputed from the clamped score; the model's own label is ignored.
    """
    score = _score(raw.get("quality_score"))
    label = quality_label_for(score)
    needs_improvement = label != "good" or _flag(raw.get("needs_improvement"))

    reason = None
    if needs_improvement:
        reason = _short_text(raw.get("improvement_reason"), MAX_REASON_CHARS)
        if not reason:
            reason = f"Answer quality rated {label} (score {score:.2f})"

    return AnalysisResult(
        quality_score=score,
        quality_label=label,
        needs_improvement=needs_improvement,
        improvement_reason=reason,
        category=_short_text(raw.get("category")) or DEFAULT_CATEGORY,
        subcategory=_short_text(raw.get("subcategory")),
        topics=_topics(raw.get("topics")),
        question_type=_choice(raw.get("question_type"), QUESTION_TYPES, "other"),
        question_complexity=_choice(raw.get("question_complexity"), COMPLEXITIES, "moderate"),
        has_citations=_flag(raw.get("has_citations")),
        confidence_expressed=_flag(raw.get("confidence_expressed")),
        model_used=model,
    )


def analyze(question: str, answer: str) -> AnalysisResult:
    """
    Judge one question/answer pair.
    Raises AnalysisUnavailable when the model can't be reached or returns no usable JSON.
    """
    settings = load_settings()
    if not settings.openai_api_key:
        raise AnalysisUnavailable("OPENAI_API_KEY is not configured")

    client = _openai_client(settings)
    text, model = _chat_completion_with_retry(client, build_analysis_messages(question, answer), settings)
    if not text:
        raise AnalysisUnavailable("Quality analysis call failed")

    raw = _parse_llm_json(text)
    if raw is None:
        raise AnalysisUnavailable("Quality analysis returned malformed JSON")
    return coerce_analysis(raw, model=model)

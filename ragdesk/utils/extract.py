# =============================================
# File: ragdesk/utils/extract.py
# Purpose: Pull the answer text out of a loosely-typed flow response
# =============================================
from __future__ import annotations
import json
from typing import Any, Callable, Iterator, List, Optional

FALLBACK_ANSWER = "No response received from the RAG system."

Extractor = Callable[[Any], Optional[str]]


def _non_blank(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _dig(obj: Any, *keys: str) -> Any:
    for k in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(k)
    return obj


def _inner_outputs(data: Any) -> Iterator[Any]:
    """Yield every outputs[].outputs[] item, skipping anything that isn't shaped that way."""
    outputs = data.get("outputs") if isinstance(data, dict) else None
    if not isinstance(outputs, list):
        return
    for output in outputs:
        inner = output.get("outputs") if isinstance(output, dict) else None
        if not isinstance(inner, list):
            continue
        yield from inner


def _from_inner(*path: str) -> Extractor:
    def extractor(data: Any) -> Optional[str]:
        for item in _inner_outputs(data):
            text = _non_blank(_dig(item, *path))
            if text:
                return text
        return None
    extractor.__name__ = "inner_" + "_".join(path)
    return extractor


def from_result(data: Any) -> Optional[str]:
    result = _dig(data, "result")
    if isinstance(result, str):
        return _non_blank(result)
    if isinstance(result, dict):
        text = _non_blank(result.get("text"))
        if text:
            return text
        return json.dumps(result, ensure_ascii=False) if result else None
    return None


def from_text(data: Any) -> Optional[str]:
    return _non_blank(_dig(data, "text"))


# Priority order; first non-blank match wins
EXTRACTORS: List[Extractor] = [
    _from_inner("results", "message", "text"),
    _from_inner("results", "text"),
    _from_inner("message", "text"),
    from_result,
    from_text,
]


def extract_answer(data: Any, extractors: List[Extractor] | None = None) -> str:
    for extractor in extractors or EXTRACTORS:
        text = extractor(data)
        if text:
            return text
    return FALLBACK_ANSWER

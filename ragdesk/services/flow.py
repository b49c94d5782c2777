# =============================================
# File: ragdesk/services/flow.py
# Purpose: HTTP client for the flow-execution service (timeout, bounded retry, tolerant parsing)
# =============================================
from __future__ import annotations
import json
import time
from typing import Any, Dict

import requests
from loguru import logger

from ..config import Settings, load_settings
from ..errors import UpstreamError

RETRY_BACKOFF_S = 0.5
_HTML_PREFIXES = ("<!doctype", "<html")


def _headers(settings: Settings) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.flow_api_key:
        headers["x-api-key"] = settings.flow_api_key
    return headers


def _post_with_retry(url: str, payload: Dict[str, Any], headers: Dict[str, str], settings: Settings) -> requests.Response:
    """
    POST once, retrying only failures where the request never reached the flow
    (refused connection, connect timeout). A read timeout is not retried: the flow
    may already be running the turn. HTTP error statuses are returned as-is.
    """
    attempts = max(1, settings.flow_max_retries + 1)
    last_err: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return requests.post(url, json=payload, headers=headers, timeout=settings.flow_timeout_s)
        except requests.ReadTimeout as e:
            logger.warning(f"[flow] no reply within {settings.flow_timeout_s}s: {e}")
            raise UpstreamError("Flow service timed out", 502) from e
        except (requests.ConnectionError, requests.ConnectTimeout) as e:
            last_err = e
            logger.warning(f"[flow] attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                time.sleep(RETRY_BACKOFF_S * attempt)
    raise UpstreamError(f"Flow service unreachable: {last_err}", 502)


def _error_message(status: int, body: str) -> str:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return f"Flow API error: {status}"
    if isinstance(data, dict):
        msg = data.get("detail") or data.get("message") or data.get("error")
        if msg:
            return f"Flow error: {msg if isinstance(msg, str) else json.dumps(msg)}"
    return f"Flow API error: {status}"


def parse_flow_response(status: int, body: str) -> Any:
    """
    Interpret a raw flow reply. Checks run in this order:
    HTML error page -> error status -> JSON decode.
    """
    head = (body or "").lstrip()[:16].lower()
    if head.startswith(_HTML_PREFIXES):
        logger.error(f"[flow] HTML reply (status={status}): {body.strip()[:200]}")
        raise UpstreamError(
            "Flow service returned an error page. Check the flow id and the service configuration.",
            502,
        )

    if not 200 <= status < 300:
        logger.error(f"[flow] status={status} body={(body or '')[:200]}")
        raise UpstreamError(_error_message(status, body), status if status >= 400 else 502)

    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"[flow] invalid JSON: {(body or '')[:500]}")
        raise UpstreamError("Invalid JSON response from the flow service", 502) from e


def run_flow(message: str, session_id: str) -> Any:
    """Send one chat turn to the flow and return its decoded JSON reply."""
    settings = load_settings()
    payload = {
        "output_type": "chat",
        "input_type": "chat",
        "input_value": message,
        "session_id": session_id,
    }
    resp = _post_with_retry(settings.run_endpoint, payload, _headers(settings), settings)
    return parse_flow_response(resp.status_code, resp.text)

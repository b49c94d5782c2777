# =============================================
# File: ragdesk/config.py
# Purpose: Settings read from the environment (.env supported)
# =============================================
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_FLOW_URL = "http://localhost:7860"
DEFAULT_OPENSEARCH_URL = "http://localhost:9200"
DEFAULT_INDEX = "rag_analytics"
SESSION_MAX_AGE_SECONDS = 60 * 60 * 24  # 24 hours


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    flow_url: str
    flow_id: str
    flow_endpoint: Optional[str]
    flow_api_key: str
    flow_timeout_s: float
    flow_max_retries: int

    opensearch_url: str
    opensearch_index: str
    opensearch_user: str
    opensearch_password: str
    opensearch_verify_certs: bool

    openai_api_key: str
    analysis_model: str
    analysis_timeout_s: float
    analysis_max_retries: int

    admin_username: str
    admin_password: str
    session_secret: Optional[str]
    cookie_secure: bool

    @property
    def run_endpoint(self) -> str:
        """Full URL of the flow-execution endpoint."""
        if self.flow_endpoint:
            return self.flow_endpoint
        return f"{self.flow_url.rstrip('/')}/api/v1/run/{self.flow_id}"


def load_settings() -> Settings:
    """Read settings at call time so tests/env overrides take effect."""
    return Settings(
        flow_url=os.getenv("FLOW_URL", DEFAULT_FLOW_URL),
        flow_id=os.getenv("FLOW_ID", ""),
        flow_endpoint=os.getenv("FLOW_ENDPOINT") or None,
        flow_api_key=os.getenv("FLOW_API_KEY", ""),
        flow_timeout_s=_float_env("FLOW_TIMEOUT_SECONDS", 60.0),
        flow_max_retries=max(0, _int_env("FLOW_MAX_RETRIES", 1)),
        opensearch_url=os.getenv("OPENSEARCH_URL", DEFAULT_OPENSEARCH_URL),
        opensearch_index=os.getenv("OPENSEARCH_INDEX", DEFAULT_INDEX),
        opensearch_user=os.getenv("OPENSEARCH_USER", ""),
        opensearch_password=os.getenv("OPENSEARCH_PASSWORD", ""),
        opensearch_verify_certs=_bool_env("OPENSEARCH_VERIFY_CERTS", False),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        analysis_model=os.getenv("ANALYSIS_MODEL", "gpt-4o-mini"),
        analysis_timeout_s=_float_env("ANALYSIS_TIMEOUT_SECONDS", 20.0),
        analysis_max_retries=max(0, _int_env("ANALYSIS_MAX_RETRIES", 1)),
        admin_username=os.getenv("ADMIN_USERNAME", "admin"),
        admin_password=os.getenv("ADMIN_PASSWORD", "admin"),
        session_secret=os.getenv("SESSION_SECRET") or None,
        cookie_secure=_bool_env("COOKIE_SECURE", False),
    )

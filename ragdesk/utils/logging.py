# =============================================
# File: ragdesk/utils/logging.py
# Purpose: Logging configuration (loguru file sink for service diagnostics)
# =============================================
from __future__ import annotations
import os

from loguru import logger

_configured = False


def configure_logging() -> None:
    """Add a rotating file sink when LOG_FILE is set. Safe to call more than once."""
    global _configured
    if _configured:
        return
    path = os.getenv("LOG_FILE", "").strip()
    if path:
        logger.add(path, rotation="10 MB", level=os.getenv("LOG_LEVEL", "INFO").upper(), enqueue=True)
    _configured = True

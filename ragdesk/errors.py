# =============================================
# File: ragdesk/errors.py
# Purpose: Error taxonomy shared by services and routers
# =============================================
from __future__ import annotations


class RagdeskError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(RagdeskError):
    status_code = 400


class UpstreamError(RagdeskError):
    """Flow service unreachable, returned garbage, or answered with an error status."""

    status_code = 502


class AnalysisUnavailable(RagdeskError):
    status_code = 503


class StoreUnavailable(RagdeskError):
    status_code = 503


class AuthError(RagdeskError):
    status_code = 401

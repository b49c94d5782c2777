# =============================================
# File: ragdesk/services/auth.py
# Purpose: Admin session gate: session store interface, signed-cookie store, single-account login
# =============================================
from __future__ import annotations
import abc
import hmac
import secrets
import threading
import time
from typing import Dict, Optional

from fastapi import Request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from loguru import logger

from ..config import SESSION_MAX_AGE_SECONDS, load_settings
from ..errors import AuthError

COOKIE_NAME = "admin_auth"
_SALT = "ragdesk.admin-session"


class SessionStore(abc.ABC):
    """Issues and validates admin session tokens."""

    max_age: int = SESSION_MAX_AGE_SECONDS

    @abc.abstractmethod
    def issue(self) -> str:
        ...

    @abc.abstractmethod
    def is_valid(self, token: Optional[str]) -> bool:
        ...

    @abc.abstractmethod
    def revoke(self, token: Optional[str]) -> None:
        ...


class SignedCookieSessionStore(SessionStore):
    """
    Stateless tokens signed with itsdangerous; the timestamp inside the
    signature enforces the fixed expiry. Logged-out tokens are remembered
    in-process until they would have expired on their own.
    """

    def __init__(self, secret: str, max_age: int = SESSION_MAX_AGE_SECONDS):
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret, salt=_SALT)
        self._revoked: Dict[str, float] = {}
        self._lock = threading.Lock()

    def issue(self) -> str:
        return self._serializer.dumps({"authenticated": True})

    def is_valid(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            self._prune()
            if token in self._revoked:
                return False
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except BadSignature:  # includes SignatureExpired
            return False
        return isinstance(data, dict) and data.get("authenticated") is True

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._revoked[token] = time.time()

    def _prune(self) -> None:
        cutoff = time.time() - self.max_age
        for tok in [t for t, ts in self._revoked.items() if ts < cutoff]:
            self._revoked.pop(tok, None)


class AdminAuthenticator:
    """Checks the single configured admin credential pair and hands out sessions."""

    def __init__(self, sessions: SessionStore):
        self.sessions = sessions

    def login(self, username: Optional[str], password: Optional[str]) -> str:
        settings = load_settings()
        user_ok = hmac.compare_digest((username or "").encode(), settings.admin_username.encode())
        pass_ok = hmac.compare_digest((password or "").encode(), settings.admin_password.encode())
        if not (user_ok and pass_ok):
            raise AuthError("Invalid username or password")
        return self.sessions.issue()

    def check(self, token: Optional[str]) -> bool:
        return self.sessions.is_valid(token)

    def logout(self, token: Optional[str]) -> None:
        self.sessions.revoke(token)


_authenticator: Optional[AdminAuthenticator] = None
_auth_lock = threading.Lock()


def get_authenticator() -> AdminAuthenticator:
    global _authenticator
    if _authenticator is None:
        with _auth_lock:
            if _authenticator is None:
                secret = load_settings().session_secret
                if not secret:
                    logger.warning("[auth] SESSION_SECRET not set; sessions will not survive a restart")
                    secret = secrets.token_urlsafe(32)
                _authenticator = AdminAuthenticator(SignedCookieSessionStore(secret))
    return _authenticator


def reset_authenticator() -> None:
    """For tests: forget the cached authenticator (and its secret)."""
    global _authenticator
    _authenticator = None


def require_admin(request: Request) -> None:
    """FastAPI dependency: 401 unless the request carries a valid admin session cookie."""
    if not get_authenticator().check(request.cookies.get(COOKIE_NAME)):
        raise AuthError("Authentication required")

# =============================================
# File: ragdesk/routers/auth.py
# Purpose: Admin login/check/logout backed by a signed session cookie
# =============================================
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ragdesk.config import load_settings
from ragdesk.errors import AuthError
from ragdesk.services.auth import COOKIE_NAME, get_authenticator

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


@router.post("/login")
def login(req: LoginRequest):
    auth = get_authenticator()
    try:
        token = auth.login(req.username, req.password)
    except AuthError as e:
        return JSONResponse({"success": False, "message": e.message}, status_code=e.status_code)

    resp = JSONResponse({"success": True, "message": "Login successful"})
    resp.set_cookie(
        COOKIE_NAME,
        token,
        max_age=auth.sessions.max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=load_settings().cookie_secure,
    )
    return resp


@router.get("/check")
def check(request: Request):
    if get_authenticator().check(request.cookies.get(COOKIE_NAME)):
        return {"authenticated": True}
    return JSONResponse({"authenticated": False}, status_code=401)


@router.post("/logout")
def logout(request: Request):
    get_authenticator().logout(request.cookies.get(COOKIE_NAME))
    resp = JSONResponse({"success": True})
    resp.delete_cookie(COOKIE_NAME, path="/")
    return resp

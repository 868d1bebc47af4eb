"""
Admin login/logout.

Login exchanges the admin password for a session cookie that the mutating
endpoints check through :func:`~simulive.web.dependencies.require_admin`.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...infra.auth import ADMIN_COOKIE_NAME, COOKIE_MAX_AGE, AdminAuthenticator
from ...infra.settings import settings
from ..dependencies import get_authenticator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class LoginRequest(BaseModel):
    password: str | None = None


@router.post("/login")
async def login(
    payload: LoginRequest,
    auth: AdminAuthenticator = Depends(get_authenticator),
) -> JSONResponse:
    if not payload.password:
        return JSONResponse(status_code=400, content={"error": "Password is required"})

    if not auth.verify_password(payload.password):
        logger.warning("Admin login rejected")
        return JSONResponse(status_code=401, content={"error": "Invalid password"})

    token = auth.create_session()
    if token is None:
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to create session. Please try again."},
        )

    response = JSONResponse(content={"success": True})
    response.set_cookie(
        ADMIN_COOKIE_NAME,
        token,
        max_age=COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )
    return response


@router.post("/logout")
async def logout(
    request: Request,
    auth: AdminAuthenticator = Depends(get_authenticator),
) -> JSONResponse:
    auth.delete_session(request.cookies.get(ADMIN_COOKIE_NAME))
    response = JSONResponse(content={"success": True})
    response.delete_cookie(ADMIN_COOKIE_NAME, path="/")
    return response

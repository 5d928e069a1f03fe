"""
Sign-in / sign-out routes.

Endpoints:
  POST /api/auth/login   – validate the form, authenticate, hand out a bearer token
  POST /api/auth/logout  – end the caller's session (provider errors are only logged)
  GET  /api/auth/me      – principal of the caller's session, if any
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from garage.api.deps import CurrentSession, current_session, get_gateway
from garage.auth.gateway import IdentityGateway
from garage.auth.tokens import create_access_token
from garage.core.config import settings
from garage.schemas.responses import LoginRequest, PrincipalRead, TokenRead

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/login", response_model=TokenRead)
async def login(body: LoginRequest, gateway: IdentityGateway = Depends(get_gateway)):
    # FormValidationError / AuthFailure are turned into 422 / 401 by the app handlers
    principal = await gateway.sign_in(body.email, body.password)
    ttl = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    session_id = gateway.open_session(principal, ttl_seconds=ttl)
    return TokenRead(
        authenticated=True,
        principal=principal,
        access_token=create_access_token(principal, session_id),
        expires_in=ttl,
    )


@auth_router.post("/logout", response_model=PrincipalRead)
async def logout(
    session: Optional[CurrentSession] = Depends(current_session),
    gateway: IdentityGateway = Depends(get_gateway),
):
    if session is not None:
        await gateway.end_session(session.session_id)
    return PrincipalRead(authenticated=False)


@auth_router.get("/me", response_model=PrincipalRead)
def me(session: Optional[CurrentSession] = Depends(current_session)):
    if session is None:
        return PrincipalRead(authenticated=False)
    return PrincipalRead(authenticated=True, principal=session.principal)

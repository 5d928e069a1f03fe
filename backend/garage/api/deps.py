"""FastAPI dependencies shared by every router."""
from __future__ import annotations

from typing import NamedTuple, Optional, Sequence, TypeVar

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from garage.auth.gateway import IdentityGateway
from garage.auth.tokens import decode_access_token
from garage.schemas.responses import Page
from garage.store.state import AppState

T = TypeVar("T")

# auto_error=False so a missing header is a 401 from require_user, not a 403
bearer_scheme = HTTPBearer(auto_error=False)


class CurrentSession(NamedTuple):
    principal: str
    session_id: str


def get_state(request: Request) -> AppState:
    return request.app.state.garage


def get_gateway(request: Request) -> IdentityGateway:
    return request.app.state.identity


def current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    gateway: IdentityGateway = Depends(get_gateway),
) -> Optional[CurrentSession]:
    """The caller's live session, or None for anonymous / expired / revoked tokens."""
    if credentials is None:
        return None
    try:
        claims = decode_access_token(credentials.credentials)
    except JWTError:
        return None
    session_id = claims.get("sid")
    principal = gateway.session_principal(session_id)
    if principal is None or principal != claims.get("sub"):
        return None
    return CurrentSession(principal, session_id)


def require_user(session: Optional[CurrentSession] = Depends(current_session)) -> str:
    """Gate: the signed-in principal of this request's session, or 401."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session.principal


def paginate(records: Sequence[T], page: int, page_size: int, model: type[T]) -> Page[T]:
    start = (page - 1) * page_size
    return Page[model](
        total=len(records),
        page=page,
        page_size=page_size,
        items=list(records[start:start + page_size]),
    )

"""
api/routes/auth.py -- Sign-up, login, logout and login-history endpoints.

Routes:
  POST /api/auth/signup          -- create a citizen account; 201
  POST /api/auth/login           -- password login; returns a bearer token
  POST /api/auth/logout          -- stateless; 200, no server-side effect
  GET  /api/auth/me              -- current user (requires token)
  GET  /api/auth/login-history   -- caller's login attempts (requires token)

Security:
  The login route returns the same 401 for unknown email and wrong password;
  AuthService handles both cases, including timing equalization. Do NOT inline
  a lookup + verify here.
  Cache-Control: no-store on login responses (the body carries a token).

Request bodies are passed through raw; AuthService validates them and raises
ValidationError, which api/main.py renders as 400 with per-field issues.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse

from api.models import (
    LoginHistoryItem,
    LoginHistoryResponse,
    LoginResponse,
    MeResponse,
    MessageResponse,
    UserCreatedResponse,
    UserResponse,
)
from auth.dependencies import get_token_claims
from auth.models import Provenance, TokenClaims
from auth.service import AuthService
from core.errors import UnauthorizedError

# Auth policy:
# - POST /api/auth/signup:         public
# - POST /api/auth/login:          public -- login endpoint must be unauthenticated
# - POST /api/auth/logout:         public -- tokens are stateless, nothing to revoke
# - GET  /api/auth/me:             requires token (get_token_claims)
# - GET  /api/auth/login-history:  requires token (get_token_claims)
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _provenance(request: Request) -> Provenance:
    return Provenance(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent") or None,
    )


@router.post("/auth/signup", response_model=UserCreatedResponse, status_code=201)
def signup(request: Request, payload: Any = Body(default=None)) -> UserCreatedResponse:
    """Create a citizen account from {email, password, fullName}."""
    user = _service(request).register(payload)
    return UserCreatedResponse(message="Account created", user=UserResponse.from_public(user))


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, payload: Any = Body(default=None)) -> JSONResponse:
    """Authenticate with email and password; return a one-hour bearer token.

    Send the token on later requests as: Authorization: Bearer <token>
    """
    result = _service(request).authenticate(payload, _provenance(request))
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            message="Authenticated",
            token=result.token,
            expires_in=result.expires_in,
            user=UserResponse.from_public(result.user),
        ).model_dump(mode="json", by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    """Acknowledge logout. The client discards its token; nothing is stored server side."""
    return MessageResponse(message="Logged out successfully")


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, claims: TokenClaims = Depends(get_token_claims)) -> MeResponse:
    """Return the account the bearer token was issued to."""
    user = _service(request).get_user(claims.subject)
    if user is None:
        raise UnauthorizedError("Invalid or expired token")
    return MeResponse(user=UserResponse.from_public(user))


@router.get("/auth/login-history", response_model=LoginHistoryResponse)
def login_history(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
    claims: TokenClaims = Depends(get_token_claims),
) -> LoginHistoryResponse:
    """Return the caller's most recent login attempts, newest first."""
    entries = _service(request).login_history(claims.subject, limit)
    return LoginHistoryResponse(history=[LoginHistoryItem.from_entry(e) for e in entries])

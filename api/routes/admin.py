"""
api/routes/admin.py -- Admin-only provisioning endpoints.

Routes:
  POST /api/admin/ngos   -- create an NGO account (admin token required)

The require_admin dependency runs before the body is handed to the service:
a missing or bad token is a 401 and a non-admin token a 403, whatever the
body contains.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from api.models import UserCreatedResponse, UserResponse
from auth.dependencies import require_admin
from auth.models import TokenClaims
from auth.service import AuthService

router = APIRouter()


@router.post("/admin/ngos", response_model=UserCreatedResponse, status_code=201)
def create_ngo(
    request: Request,
    payload: Any = Body(default=None),
    admin: TokenClaims = Depends(require_admin),
) -> UserCreatedResponse:
    """Create an NGO account from {email, password, organizationName}. Admin only."""
    service: AuthService = request.app.state.auth_service
    user = service.register_ngo(payload)
    return UserCreatedResponse(message="NGO account created", user=UserResponse.from_public(user))

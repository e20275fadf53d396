"""
API response models for the auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in auth/models.py, which own the internal
domain representation; the from_* factory methods map between the two.

Wire names are camelCase (fullName, createdAt, ipAddress...). Fields are
declared snake_case with aliases (populate_by_name); FastAPI serializes
response_model output by alias.

Request bodies are validated by the auth core itself (auth/schemas.py), not
here, so the core's validation contract holds for every caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import LoginHistoryEntry, PublicUser
from core.errors import FieldIssue

# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Sanitized user. Never carries the password hash."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    email: str
    full_name: str = Field(alias="fullName")
    created_at: datetime = Field(alias="createdAt")
    role: str

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            created_at=user.created_at,
            role=user.role.value,
        )


class UserCreatedResponse(BaseModel):
    """Response for POST /api/auth/signup and POST /api/admin/ngos."""

    message: str
    user: UserResponse


class MeResponse(BaseModel):
    """Response for GET /api/auth/me."""

    user: UserResponse


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Response for POST /api/auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    token: str
    token_type: str = Field(default="bearer", alias="tokenType")
    expires_in: int = Field(alias="expiresIn")
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class LoginHistoryItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    email: str
    success: bool
    ip_address: Optional[str] = Field(default=None, alias="ipAddress")
    user_agent: Optional[str] = Field(default=None, alias="userAgent")
    attempted_at: datetime = Field(alias="attemptedAt")

    @classmethod
    def from_entry(cls, entry: LoginHistoryEntry) -> "LoginHistoryItem":
        return cls(
            id=entry.id,
            email=entry.email,
            success=entry.success,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            attempted_at=entry.attempted_at,
        )


class LoginHistoryResponse(BaseModel):
    """Response for GET /api/auth/login-history."""

    history: list[LoginHistoryItem]


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class IssueDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str

    @classmethod
    def from_issue(cls, issue: FieldIssue) -> "IssueDetail":
        return cls(field=issue.field, message=issue.message)


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response.

    issues is present only for validation failures; detail only in debug mode.
    Serialize with model_dump(exclude_none=True).
    """

    model_config = ConfigDict(frozen=True)

    error: str
    code: str
    issues: Optional[list[IssueDetail]] = None
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str

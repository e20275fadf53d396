"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the auth
service do the work; these types only own the shape of the domain.

Ownership: the user repository owns User records, the login history
repository owns LoginHistoryEntry records. Across that boundary they are
referenced only by id.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    admin = "admin"
    ngo = "ngo"
    citizen = "citizen"


@dataclass
class User:
    """An account in the credential store.

    email is stored lower-cased; it is the lookup key and is unique across the
    store regardless of the case the user typed. full_name holds the
    organization name for NGO accounts.

    password_hash is the bcrypt output. It never leaves the auth core -- use
    PublicUser for anything sent to a client.

    role is fixed at creation; there is no role-change operation.
    """

    email: str
    full_name: str
    password_hash: str
    role: Role
    created_at: datetime
    id: str = ""  # assigned by the store on insert


@dataclass(frozen=True)
class PublicUser:
    """Outward-facing projection of a User. Carries no password-derived field."""

    id: str
    email: str
    full_name: str
    created_at: datetime
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            created_at=user.created_at,
            role=user.role,
        )


@dataclass(frozen=True)
class Provenance:
    """Best-effort request metadata recorded alongside a login attempt."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass
class LoginHistoryEntry:
    """One login attempt. Append-only: written once, never updated or deleted.

    user_id is None when the attempted email matched no account; email keeps
    the (normalized) address that was tried in either case.
    """

    email: str
    success: bool
    attempted_at: datetime
    user_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    id: str = ""  # assigned by the store on insert


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token. Never persisted."""

    subject: str  # user id
    role: Role
    issued_at: datetime
    expires_at: datetime

"""
auth/service.py -- Registration, authentication and NGO provisioning.

AuthService orchestrates the collaborators behind the auth flows:

  payload -> schema validation -> UserRepository lookup/write
          -> PasswordHasher -> TokenService -> result

Error discipline: every failure is a typed exception from core.errors.
  ValidationError  -- raised before any store access, one issue per field
  ConflictError    -- email already registered (lookup, or the store's
                      uniqueness constraint losing a race)
  UnauthorizedError("Invalid credentials") -- identical for unknown email and
                      wrong password so the response does not reveal which
  StorageError     -- propagated unchanged from the repositories

Authorization is NOT checked here. register_ngo() is only reachable through
the admin gate in auth/dependencies.py; keeping the role check out of the
service leaves the two concerns independent.

Login history is optional at this level (history=None skips auditing). The
running application always wires it.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from auth.models import LoginHistoryEntry, Provenance, PublicUser, Role, User
from auth.passwords import PasswordHasher
from auth.repository import DEFAULT_HISTORY_LIMIT, LoginHistoryRepository, UserRepository
from auth.schemas import LoginInput, NgoSignupInput, SignupInput, parse_input
from auth.tokens import TokenService
from core.errors import ConflictError, UnauthorizedError

logger = logging.getLogger("civicauth.auth")


@dataclass(frozen=True)
class AuthResult:
    """Successful authenticate() outcome: a bearer token plus the public user."""

    token: str
    user: PublicUser
    expires_in: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Auth core. Stateless apart from its collaborators; safe to share across requests."""

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
        history: LoginHistoryRepository | None = None,
    ) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.history = history

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, payload: Any) -> PublicUser:
        """Create a citizen account from {email, password, fullName}."""
        data = parse_input(SignupInput, payload, "Invalid signup data")
        user = self._create_user(data.email, data.password, data.full_name, Role.citizen)
        logger.info("Registered citizen account %s", user.email)
        return user

    def register_ngo(self, payload: Any) -> PublicUser:
        """Create an NGO account from {email, password, organizationName}.

        Callers must have passed the admin gate; no role check happens here.
        """
        data = parse_input(NgoSignupInput, payload, "Invalid NGO data")
        user = self._create_user(data.email, data.password, data.organization_name, Role.ngo)
        logger.info("Registered NGO account %s", user.email)
        return user

    def ensure_admin(self, email: str, password: str, full_name: str) -> bool:
        """Seed an admin account unless one already exists for email.

        Returns True if an account was created. Losing a creation race to
        another process counts as already present.

        The credentials go through the same rules as a sign-up, so a seeded
        admin can always log in. Raises ValidationError otherwise.
        """
        data = parse_input(
            SignupInput,
            {"email": email, "password": password, "fullName": full_name},
            "Invalid admin bootstrap credentials",
        )
        if self.users.find_by_email(data.email) is not None:
            return False
        try:
            self._create_user(data.email, data.password, data.full_name, Role.admin)
        except ConflictError:
            return False
        return True

    def _create_user(self, email: str, password: str, full_name: str, role: Role) -> PublicUser:
        email = email.lower()
        if self.users.find_by_email(email) is not None:
            raise ConflictError()
        user = User(
            email=email,
            full_name=full_name,
            password_hash=self.hasher.hash(password),
            role=role,
            created_at=_utcnow(),
        )
        return PublicUser.from_user(self.users.create(user))

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, payload: Any, provenance: Provenance | None = None) -> AuthResult:
        """Check {email, password} and issue a one-hour bearer token.

        Every attempt that passes validation is written to the login history
        before this method returns or raises, success or not.
        """
        data = parse_input(LoginInput, payload, "Invalid login data")
        email = data.email.lower()
        provenance = provenance or Provenance()

        user = self.users.find_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.dummy_verify(data.password)
            self._record_attempt(email, None, False, provenance)
            logger.info("Login failed for %s (unknown account)", email)
            raise UnauthorizedError("Invalid credentials")

        if not self.hasher.verify(data.password, user.password_hash):
            self._record_attempt(email, user.id, False, provenance)
            logger.info("Login failed for %s (bad password)", email)
            raise UnauthorizedError("Invalid credentials")

        self._record_attempt(email, user.id, True, provenance)
        token = self.tokens.issue(user.id, user.role)
        logger.info("Login succeeded for %s", email)
        return AuthResult(token=token, user=PublicUser.from_user(user), expires_in=self.tokens.ttl_seconds)

    def _record_attempt(self, email: str, user_id: str | None, success: bool, provenance: Provenance) -> None:
        if self.history is None:
            return
        self.history.create(
            LoginHistoryEntry(
                email=email,
                user_id=user_id,
                success=success,
                ip_address=provenance.ip_address,
                user_agent=provenance.user_agent,
                attempted_at=_utcnow(),
            )
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> PublicUser | None:
        user = self.users.find_by_id(user_id)
        return PublicUser.from_user(user) if user is not None else None

    def login_history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LoginHistoryEntry]:
        """Newest-first attempts for user_id. Empty when no history store is wired."""
        if self.history is None:
            return []
        return self.history.find_by_user_id(user_id, limit)

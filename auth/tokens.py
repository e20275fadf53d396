"""
auth/tokens.py -- JWT issue / verify for bearer access tokens.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide secret
       and carry sub (user id), role, iat and exp. Nothing is stored server
       side: there is no session table and no revocation list. A denylist, if
       one is ever needed, belongs in a separate collaborator keyed by token id
       and must not change issue()/verify().

  Lifetime: fixed at one hour from issuance. No refresh tokens.

  Errors: verify() distinguishes an expired token (ExpiredTokenError) from a
       malformed or mis-signed one (InvalidTokenError). Both are 401s; the
       split exists for logs and for callers that want to prompt a re-login.

  Secret: passed in by the lifespan from Settings. It is never logged and
       never read from ambient state here.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import Role, TokenClaims
from core.errors import ExpiredTokenError, InvalidTokenError

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(hours=1)


class TokenService:
    """Signs and verifies access tokens with a shared secret.

    Usage:
        tokens = TokenService(settings.secret_key)
        token = tokens.issue(user.id, user.role)
        claims = tokens.verify(token)     # TokenClaims(subject=..., role=...)
    """

    def __init__(self, secret_key: str, ttl: timedelta = TOKEN_TTL, algorithm: str = ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret key")
        self._secret_key = secret_key
        self.ttl = ttl
        self.algorithm = algorithm

    def __repr__(self) -> str:
        # Keep the secret out of reprs, tracebacks and debug logs.
        return f"TokenService(algorithm={self.algorithm!r}, ttl={self.ttl!r})"

    @property
    def ttl_seconds(self) -> int:
        return int(self.ttl.total_seconds())

    def issue(self, subject: str, role: Role | str, now: datetime | None = None) -> str:
        """Encode a signed JWT for subject with the given role.

        now defaults to the current UTC time; tests pass an earlier instant to
        mint tokens that are already expired.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject),
            "role": Role(role).value,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode and check signature and expiry; return the claim set.

        Raises ExpiredTokenError once exp has passed, InvalidTokenError for
        anything else wrong with the token (bad signature, garbage input,
        missing sub, unknown role).
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise ExpiredTokenError() from exc
        except JWTError as exc:
            raise InvalidTokenError() from exc

        subject = payload.get("sub")
        if not subject or not isinstance(subject, str):
            raise InvalidTokenError()
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise InvalidTokenError() from exc

        try:
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidTokenError() from exc

        return TokenClaims(subject=subject, role=role, issued_at=issued_at, expires_at=expires_at)

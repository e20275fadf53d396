"""Unit tests for auth/tokens.py -- TokenService issue / verify.

Covers:
- round trip: verify(issue(sub, role)) returns the same subject and role
- expiry is one hour after issuance
- expired tokens raise ExpiredTokenError; tampered / foreign tokens raise InvalidTokenError
- both error types are UnauthorizedError (401)
- tokens missing sub or carrying an unknown role are rejected
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import Role
from auth.tokens import ALGORITHM, TOKEN_TTL, TokenService
from core.errors import ExpiredTokenError, InvalidTokenError, UnauthorizedError

_SECRET = "unit-test-secret-0123456789abcdef0123456789"


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(_SECRET)


class TestRoundTrip:
    @pytest.mark.parametrize("role", list(Role))
    def test_verify_returns_issued_claims(self, tokens, role):
        claims = tokens.verify(tokens.issue("user-123", role))
        assert claims.subject == "user-123"
        assert claims.role == role

    def test_role_accepts_plain_string(self, tokens):
        assert tokens.verify(tokens.issue("u1", "ngo")).role == Role.ngo

    def test_expiry_is_one_hour_after_issue(self, tokens):
        claims = tokens.verify(tokens.issue("u1", Role.citizen))
        assert claims.expires_at - claims.issued_at == timedelta(hours=1)
        assert TOKEN_TTL == timedelta(hours=1)
        assert tokens.ttl_seconds == 3600


class TestRejection:
    def test_expired_token(self, tokens):
        issued = datetime.now(timezone.utc) - timedelta(hours=1, seconds=5)
        token = tokens.issue("u1", Role.admin, now=issued)
        with pytest.raises(ExpiredTokenError):
            tokens.verify(token)

    def test_token_just_inside_window_is_valid(self, tokens):
        issued = datetime.now(timezone.utc) - timedelta(minutes=59)
        assert tokens.verify(tokens.issue("u1", Role.admin, now=issued)).subject == "u1"

    def test_wrong_secret(self, tokens):
        other = TokenService("another-secret-0123456789abcdef0123456789")
        with pytest.raises(InvalidTokenError):
            tokens.verify(other.issue("u1", Role.admin))

    def test_tampered_payload(self, tokens):
        header, payload, signature = tokens.issue("u1", Role.citizen).split(".")
        forged_payload = tokens.issue("u1", Role.admin).split(".")[1]
        assert forged_payload != payload
        with pytest.raises(InvalidTokenError):
            tokens.verify(f"{header}.{forged_payload}.{signature}")

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "Bearer xyz"])
    def test_garbage(self, tokens, garbage):
        with pytest.raises(InvalidTokenError):
            tokens.verify(garbage)

    def test_missing_subject(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode({"role": "admin", "iat": now, "exp": now + TOKEN_TTL}, _SECRET, algorithm=ALGORITHM)
        with pytest.raises(InvalidTokenError):
            tokens.verify(token)

    def test_unknown_role(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "u1", "role": "superuser", "iat": now, "exp": now + TOKEN_TTL}, _SECRET, algorithm=ALGORITHM
        )
        with pytest.raises(InvalidTokenError):
            tokens.verify(token)

    def test_errors_are_unauthorized(self):
        assert issubclass(ExpiredTokenError, UnauthorizedError)
        assert issubclass(InvalidTokenError, UnauthorizedError)
        assert ExpiredTokenError().status_code == 401


class TestConstruction:
    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService("")

    def test_repr_hides_secret(self, tokens):
        assert _SECRET not in repr(tokens)

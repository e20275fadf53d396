"""
auth/dependencies.py -- FastAPI Depends() helpers: the authorization gate.

Each request is authorized on its own, with no retries:

  no/malformed "Authorization: Bearer <token>" header -> 401 "Missing bearer token"
  token fails verification (bad signature, expired)   -> 401 "Invalid or expired token"
  token valid but role != required role               -> 403 "Forbidden"
  otherwise                                           -> claims on request.state.claims

get_token_claims() is the authenticated-any-role variant.
require_role(role) builds a dependency that also enforces the role.
require_admin is require_role(Role.admin).

The gate raises core.errors exceptions; api/main.py renders them. It reads
the TokenService from request.app.state.tokens, placed there by the lifespan.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request

from auth.models import Role, TokenClaims
from auth.tokens import TokenService
from core.errors import ForbiddenError, UnauthorizedError

logger = logging.getLogger("civicauth.auth")

_BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_token_claims(request: Request) -> TokenClaims:
    """Require a valid bearer token. Raises UnauthorizedError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: TokenClaims = Depends(get_token_claims)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise UnauthorizedError("Missing bearer token")

    tokens: TokenService = request.app.state.tokens
    try:
        claims = tokens.verify(token)
    except UnauthorizedError as exc:
        # Expired vs invalid is only visible in the log; the client gets one message.
        logger.info("Rejected bearer token on %s: %s", request.url.path, exc.code)
        raise UnauthorizedError("Invalid or expired token") from exc

    request.state.claims = claims
    return claims


def require_role(role: Role) -> Callable[[Request], TokenClaims]:
    """Build a dependency that admits only tokens carrying role.

    Use as a FastAPI dependency:
        @router.post("/admin-only")
        def route(claims: TokenClaims = Depends(require_role(Role.admin))): ...
    """

    def dependency(request: Request) -> TokenClaims:
        claims = get_token_claims(request)
        if claims.role != role:
            logger.info("Forbidden: %s token on %s requires %s", claims.role.value, request.url.path, role.value)
            raise ForbiddenError("Forbidden")
        return claims

    dependency.__name__ = f"require_{role.value}"
    return dependency


require_admin = require_role(Role.admin)

"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection feeds bcrypt 4.x a password longer than 72 bytes, which it rejects.
Direct usage is simpler and has no compatibility shim.

bcrypt only looks at the first 72 bytes of its input. We truncate explicitly
on both hash and verify so long passphrases behave identically on bcrypt
releases that truncate silently and releases that raise.

Timing equalization: dummy_verify() runs one full bcrypt check against a
throwaway hash. The auth service calls it when an email matches no account so
response time does not reveal whether the account exists.
"""

from __future__ import annotations

import bcrypt

_BCRYPT_MAX_BYTES = 72

DEFAULT_ROUNDS = 12


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """One-way adaptive hash with constant-time verification.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("StrongP@ssw0rd")
        hasher.verify("StrongP@ssw0rd", stored)   # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Built up front so the first unknown-email login costs one checkpw, like every other.
        self._dummy_hash = self.hash("civicauth_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt hash of plain. Never store the plain value."""
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed. A malformed hash counts as a mismatch."""
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def dummy_verify(self, plain: str) -> None:
        """Spend the same bcrypt work as a real verify, discarding the result."""
        self.verify(plain, self._dummy_hash)

"""Unit tests for auth/passwords.py -- bcrypt hash and verify.

Covers:
- hash output is a bcrypt string, salted (two hashes of one password differ)
- verify(hash(P), P) is True; verify(hash(P), P') is False
- malformed stored hashes verify as False instead of raising
- inputs beyond bcrypt's 72-byte window are handled without error
"""

import pytest

from auth.passwords import PasswordHasher

_PASSWORD = "StrongP@ssw0rd"


@pytest.fixture(scope="module")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


class TestHash:
    def test_hash_is_bcrypt_format(self, hasher):
        hashed = hasher.hash(_PASSWORD)
        assert hashed.startswith("$2")
        assert _PASSWORD not in hashed

    def test_hash_is_salted(self, hasher):
        assert hasher.hash(_PASSWORD) != hasher.hash(_PASSWORD)

    def test_rounds_recorded_in_hash(self, hasher):
        assert hasher.hash(_PASSWORD).split("$")[2] == "04"


class TestVerify:
    def test_correct_password_matches(self, hasher):
        assert hasher.verify(_PASSWORD, hasher.hash(_PASSWORD)) is True

    @pytest.mark.parametrize("other", ["strongp@ssw0rd", "StrongP@ssw0rd ", "", "completely different"])
    def test_other_password_does_not_match(self, hasher, other):
        assert hasher.verify(other, hasher.hash(_PASSWORD)) is False

    def test_malformed_hash_is_mismatch(self, hasher):
        assert hasher.verify(_PASSWORD, "not-a-bcrypt-hash") is False

    def test_long_password_round_trip(self, hasher):
        long_password = "x" * 100
        assert hasher.verify(long_password, hasher.hash(long_password)) is True

    def test_multibyte_password_round_trip(self, hasher):
        password = "нууц үг 密码 🔐🔐"
        assert hasher.verify(password, hasher.hash(password)) is True

    def test_dummy_verify_returns_none(self, hasher):
        """dummy_verify only spends time; it never reports a match."""
        assert hasher.dummy_verify(_PASSWORD) is None

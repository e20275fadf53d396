"""
auth/repository.py -- Capability interfaces for the credential store and audit log.

The auth service depends on these Protocols, not on a concrete store. Two
implementations of each exist:

  UserStore / LoginHistoryStore                  auth/store.py   (SQLAlchemy Core)
  InMemoryUserStore / InMemoryLoginHistoryStore  auth/memory.py  (tests, demos)

Contract shared by every implementation:
  - Emails are normalized to lowercase on write and on lookup.
  - UserRepository.create() is an atomic check-and-insert on email. A
    duplicate raises core.errors.ConflictError; the service's own lookup is a
    fast path, the store is the authority under concurrency.
  - Driver failures surface as core.errors.StorageError, never as raw
    driver exceptions.
  - Login history queries return newest first, truncated to limit.
"""

from __future__ import annotations

from typing import Protocol

from auth.models import LoginHistoryEntry, User

DEFAULT_HISTORY_LIMIT = 10


class UserRepository(Protocol):
    def find_by_email(self, email: str) -> User | None: ...

    def find_by_id(self, user_id: str) -> User | None: ...

    def create(self, user: User) -> User: ...


class LoginHistoryRepository(Protocol):
    def create(self, entry: LoginHistoryEntry) -> LoginHistoryEntry: ...

    def find_by_user_id(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LoginHistoryEntry]: ...

    def find_by_email(self, email: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LoginHistoryEntry]: ...

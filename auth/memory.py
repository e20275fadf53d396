"""
auth/memory.py -- In-memory repositories for tests and throwaway demos.

Same contract as auth/store.py (see auth/repository.py). A lock guards each
store so create() is an atomic check-and-insert even when route handlers run
on several worker threads.

Nothing here survives a restart.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace

from auth.models import LoginHistoryEntry, Role, User
from auth.repository import DEFAULT_HISTORY_LIMIT
from core.errors import ConflictError


class InMemoryUserStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_email: dict[str, User] = {}
        self._by_id: dict[str, User] = {}

    def create(self, user: User) -> User:
        email = user.email.lower()
        with self._lock:
            if email in self._by_email:
                raise ConflictError()
            stored = replace(user, id=str(uuid.uuid4()), email=email, role=Role(user.role))
            self._by_email[email] = stored
            self._by_id[stored.id] = stored
        return replace(stored)

    def find_by_email(self, email: str) -> User | None:
        with self._lock:
            user = self._by_email.get(email.lower())
        return replace(user) if user is not None else None

    def find_by_id(self, user_id: str) -> User | None:
        with self._lock:
            user = self._by_id.get(user_id)
        return replace(user) if user is not None else None

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


class InMemoryLoginHistoryStore:
    """Append-only list of attempts. Queries return copies, newest first."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[LoginHistoryEntry] = []

    def create(self, entry: LoginHistoryEntry) -> LoginHistoryEntry:
        stored = replace(entry, id=str(uuid.uuid4()), email=entry.email.lower())
        with self._lock:
            self._entries.append(stored)
        return replace(stored)

    def find_by_user_id(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LoginHistoryEntry]:
        return self._select(lambda e: e.user_id == user_id, limit)

    def find_by_email(self, email: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LoginHistoryEntry]:
        email = email.lower()
        return self._select(lambda e: e.email == email, limit)

    def _select(self, predicate, limit: int) -> list[LoginHistoryEntry]:
        with self._lock:
            matches = [e for e in self._entries if predicate(e)]
        # Stable sort on the reversed list keeps insertion order as the tie-breaker.
        matches = sorted(reversed(matches), key=lambda e: e.attempted_at, reverse=True)
        return [replace(e) for e in matches[: max(limit, 0)]]

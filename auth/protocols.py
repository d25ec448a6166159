"""
auth/protocols.py -- Storage capabilities consumed by the auth service.

Invariants:
    - The service depends on these three capabilities only, never on a
      concrete store class.
    - "Expected" storage failures (duplicate email, missing row) are reported
      as StorageError with a StorageErrorKind. Anything else a store raises is
      treated by the service as an internal failure.

Design Decisions:
    - Protocol over ABC: structural subtyping, no shared base type. A test can
      fake one capability without touching the others.
    - Sync methods: the SQL store is synchronous and FastAPI runs sync
      handlers in its thread pool.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from auth.models import App, User


class StorageErrorKind(str, Enum):
    USER_EXISTS = "user_exists"
    USER_NOT_FOUND = "user_not_found"
    APP_NOT_FOUND = "app_not_found"
    APP_EXISTS = "app_exists"


class StorageError(Exception):
    """Sentinel failure reported by a store implementation."""

    def __init__(self, kind: StorageErrorKind, op: str) -> None:
        self.kind = kind
        self.op = op
        super().__init__(f"{op}: {kind.value.replace('_', ' ')}")


class UserSaver(Protocol):
    """Persists new users. Raises StorageError(USER_EXISTS) on a duplicate email."""

    def save_user(self, email: str, pass_hash: bytes) -> int: ...


class UserProvider(Protocol):
    """Reads users. Raises StorageError(USER_NOT_FOUND) for unknown email or id."""

    def user(self, email: str) -> User: ...

    def is_admin(self, user_id: int) -> bool: ...


class AppProvider(Protocol):
    """Reads applications. Raises StorageError(APP_NOT_FOUND) for an unknown id."""

    def app(self, app_id: int) -> App: ...

"""
auth/errors.py -- Domain error kinds for the auth service.

One exception type, many kinds. Callers discriminate on AuthError.kind rather
than on a class hierarchy, so the set of outcomes a caller must handle is the
closed ErrorKind enum below.

Invariants:
  - USER_NOT_FOUND never leaves AuthService.login(); it is translated to
    INVALID_CREDENTIALS so callers cannot probe which emails are registered.
  - INTERNAL always carries the original exception as __cause__.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_APP_ID = "invalid_app_id"
    USER_EXISTS = "user_exists"
    USER_NOT_FOUND = "user_not_found"
    INTERNAL = "internal"


_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_CREDENTIALS: "invalid credentials",
    ErrorKind.INVALID_APP_ID: "invalid app id",
    ErrorKind.USER_EXISTS: "user already exists",
    ErrorKind.USER_NOT_FOUND: "user not found",
    ErrorKind.INTERNAL: "internal error",
}


class AuthError(Exception):
    """Failure of an AuthService operation.

    Attributes:
        kind:    The ErrorKind the caller should branch on.
        op:      Name of the failing operation, e.g. "auth.login".
        message: Human-readable text; defaults to the kind's canonical message.
    """

    def __init__(self, kind: ErrorKind, op: str, message: str | None = None) -> None:
        self.kind = kind
        self.op = op
        self.message = message or _MESSAGES[kind]
        super().__init__(f"{op}: {self.message}")

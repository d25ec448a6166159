"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores build these from
rows; the service and token issuer only read them.

Layer rule: no imports from api/ or storage/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered identity.

    pass_hash is the raw bcrypt output (salt and cost embedded). The plaintext
    password never reaches this object. is_admin is set outside the auth core
    (CLI grant-admin); the service only reads it.
    """

    email: str
    pass_hash: bytes
    id: int | None = None
    is_admin: bool = False


@dataclass
class App:
    """A calling application (tenant). Tokens are signed with its secret.

    Apps are provisioned by operators, never by the auth core.
    """

    id: int
    name: str
    secret: str


@dataclass(frozen=True)
class TokenClaims:
    """Verified claim set recovered from a signed token."""

    user_id: int
    email: str
    app_id: int
    expires_at: datetime


@dataclass(frozen=True)
class RequestContext:
    """Per-request diagnostics handed explicitly to service calls.

    The transport creates one per request; the service binds it into its
    per-call log adapter. Nothing here is stored between calls.
    """

    request_id: str = "-"

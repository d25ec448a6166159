"""
auth/tokens.py -- Per-application JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Each token is signed with the secret of the
       application it was issued for, so only that application (and this
       service) can verify it. The claim set is exactly uid, email, app_id
       and exp.

  Expiry: exp = issue time + ttl, as whole seconds since the epoch. Tokens are
       stateless; nothing is recorded on issue and nothing can revoke one
       before it expires.

  Verification returns None on any failure (bad signature, expired, missing
       claim). Callers treat None as "not authenticated".

Layer rule: no imports from api/, core/, or storage/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import App, TokenClaims, User

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("uid", "email", "app_id", "exp")


def new_token(user: User, app: App, ttl: timedelta, now: datetime | None = None) -> str:
    """Encode a signed JWT binding the user to the calling application.

    Args:
        user: Authenticated user; id and email become the uid/email claims.
        app:  Target application; its secret is the HMAC key.
        ttl:  Token lifetime.
        now:  Issue time. Defaults to the current UTC time.

    Raises ValueError if the application secret is empty.
    """
    if not app.secret:
        raise ValueError(f"app {app.id} has an empty signing secret")
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "uid": user.id,
        "email": user.email,
        "exp": int((issued_at + ttl).timestamp()),
        "app_id": app.id,
    }
    return jwt.encode(payload, app.secret, algorithm=_ALGORITHM)


def decode_token(token: str, secret: str) -> TokenClaims | None:
    """Verify a token against an application secret and return its claims.

    Returns None if the signature does not match, the token has expired, or a
    required claim is missing.
    """
    if not secret:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if any(claim not in payload for claim in _REQUIRED_CLAIMS):
        return None
    return TokenClaims(
        user_id=payload["uid"],
        email=payload["email"],
        app_id=payload["app_id"],
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )

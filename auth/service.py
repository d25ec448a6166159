"""
auth/service.py -- Login, registration and admin checks.

AuthService is the only place that decides what a storage outcome means to a
caller. Store sentinels (StorageError kinds) are translated to ErrorKind here;
every other exception from a store, the hasher or the token issuer becomes
ErrorKind.INTERNAL with the operation name attached and the original chained.

Security:
  [C1] login() runs bcrypt even when the email is unknown, against a dummy hash
       of the same cost, so response time does not reveal which emails exist.
       Unknown email and wrong password produce the same INVALID_CREDENTIALS.

Logging: each call builds its own LoggerAdapter carrying op, the subject
(email or user_id) and the request id from the explicit RequestContext.
Passwords and hashes are never logged.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from auth.errors import AuthError, ErrorKind
from auth.models import RequestContext
from auth.passwords import DEFAULT_ROUNDS, hash_password, verify_password
from auth.protocols import AppProvider, StorageError, StorageErrorKind, UserProvider, UserSaver
from auth.tokens import new_token

_NO_CONTEXT = RequestContext()


class _OpAdapter(logging.LoggerAdapter):
    """Prefix messages with the bound fields, e.g. "[op=auth.login email=a@b] ..."."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        fields = " ".join(f"{k}={v}" for k, v in self.extra.items())
        kwargs.setdefault("extra", {}).update(self.extra)
        return f"[{fields}] {msg}", kwargs


class AuthService:
    """Orchestrates the credential store, password hasher and token issuer.

    Usage:
        service = AuthService(log, store, store, store, token_ttl=timedelta(hours=1))
        uid = service.register_new_user("a@example.com", "hunter22")
        token = service.login("a@example.com", "hunter22", app_id=1)
        service.is_admin(uid)
    """

    def __init__(
        self,
        log: logging.Logger,
        user_saver: UserSaver,
        user_provider: UserProvider,
        app_provider: AppProvider,
        token_ttl: timedelta,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self._log = log
        self._user_saver = user_saver
        self._user_provider = user_provider
        self._app_provider = app_provider
        self._token_ttl = token_ttl
        self._bcrypt_rounds = bcrypt_rounds
        # Same cost as real hashes so the unknown-email path takes as long [C1].
        self._dummy_hash = hash_password("sso_timing_dummy", rounds=bcrypt_rounds)

    def _bind(self, ctx: RequestContext | None, **fields: Any) -> _OpAdapter:
        fields["request_id"] = (ctx or _NO_CONTEXT).request_id
        return _OpAdapter(self._log, fields)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, app_id: int, ctx: RequestContext | None = None) -> str:
        """Check credentials and return a token signed for app_id.

        Raises AuthError:
          INVALID_CREDENTIALS -- unknown email or wrong password (indistinguishable).
          INVALID_APP_ID      -- credentials fine, but app_id is not provisioned.
          INTERNAL            -- any other store or signing failure.
        """
        op = "auth.login"
        log = self._bind(ctx, op=op, email=email)
        log.info("attempting to login user")

        try:
            user = self._user_provider.user(email)
        except StorageError as exc:
            if exc.kind is StorageErrorKind.USER_NOT_FOUND:
                verify_password(self._dummy_hash, password)  # [C1]
                log.warning("user not found: %s", exc)
                raise AuthError(ErrorKind.INVALID_CREDENTIALS, op) from AuthError(ErrorKind.USER_NOT_FOUND, op)
            log.error("failed to get user: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc
        except Exception as exc:
            log.error("failed to get user: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        if not verify_password(user.pass_hash, password):
            log.info("invalid password")
            raise AuthError(ErrorKind.INVALID_CREDENTIALS, op)

        try:
            app = self._app_provider.app(app_id)
        except StorageError as exc:
            if exc.kind is StorageErrorKind.APP_NOT_FOUND:
                log.warning("app not found (app_id=%s)", app_id)
                raise AuthError(ErrorKind.INVALID_APP_ID, op) from exc
            log.error("failed to get app: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc
        except Exception as exc:
            log.error("failed to get app: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        try:
            token = new_token(user, app, self._token_ttl)
        except Exception as exc:
            log.error("failed to generate token: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        log.info("user logged in successfully (uid=%s, app_id=%s)", user.id, app.id)
        return token

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_new_user(self, email: str, password: str, ctx: RequestContext | None = None) -> int:
        """Hash the password, persist a new user and return the new user id.

        Not idempotent: a second call with the same email raises
        AuthError(USER_EXISTS) and writes nothing.
        """
        op = "auth.register_new_user"
        log = self._bind(ctx, op=op, email=email)
        log.info("registering user")

        try:
            pass_hash = hash_password(password, rounds=self._bcrypt_rounds)
        except Exception as exc:
            log.error("failed to generate password hash: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        try:
            user_id = self._user_saver.save_user(email, pass_hash)
        except StorageError as exc:
            if exc.kind is StorageErrorKind.USER_EXISTS:
                log.warning("user already exists")
                raise AuthError(ErrorKind.USER_EXISTS, op) from exc
            log.error("failed to save user: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc
        except Exception as exc:
            log.error("failed to save user: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        log.info("user registered (uid=%s)", user_id)
        return user_id

    # ------------------------------------------------------------------
    # Admin check
    # ------------------------------------------------------------------

    def is_admin(self, user_id: int, ctx: RequestContext | None = None) -> bool:
        """Return the stored admin flag for user_id. Always a fresh store read.

        An unknown user_id raises AuthError(INVALID_APP_ID), not USER_NOT_FOUND.
        Existing clients branch on that code.
        """
        op = "auth.is_admin"
        log = self._bind(ctx, op=op, user_id=user_id)
        log.info("checking if user is admin")

        try:
            is_admin = self._user_provider.is_admin(user_id)
        except StorageError as exc:
            if exc.kind is StorageErrorKind.USER_NOT_FOUND:
                log.warning("user not found: %s", exc)
                raise AuthError(ErrorKind.INVALID_APP_ID, op) from exc
            log.error("failed to check admin flag: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc
        except Exception as exc:
            log.error("failed to check admin flag: %s", exc)
            raise AuthError(ErrorKind.INTERNAL, op, str(exc)) from exc

        log.info("checked if user is admin (is_admin=%s)", is_admin)
        return is_admin

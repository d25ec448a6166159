"""
storage/sql.py -- SQLAlchemy Core persistence for users and applications.

Pattern: Repository + Data Mapper. SQLStore is the repository; _row_to_user /
_row_to_app are the mappers. The auth service sees it only through the
UserSaver / UserProvider / AppProvider Protocols.

SQLStore also carries the operator-side writes the auth core never performs:
create_app() (tenant provisioning) and set_admin() (privilege grants). They
are used by the CLI and by tests.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Email uniqueness is a UNIQUE constraint, so two concurrent registrations of
  the same email cannot both succeed -- the loser gets USER_EXISTS.

Usage:
    store = SQLStore(get_settings().database_url)     # configured default
    store = SQLStore("sqlite:///:memory:")           # tests
    store = SQLStore("postgresql://user:pw@host/sso") # PostgreSQL
    store.create_app(App(id=1, name="web", secret="..."))
    uid = store.save_user("a@example.com", pass_hash)
    store.close()
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, LargeBinary, MetaData, String, Table, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import App, User
from auth.protocols import StorageError, StorageErrorKind

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("pass_hash", LargeBinary, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default=text("0")),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("name", String(255), nullable=False, unique=True),
    Column("secret", String(255), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block on a registering writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SQLStore:
    """Repository for User and App records."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # UserSaver
    # ------------------------------------------------------------------

    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Insert a new user and return its assigned id.

        Raises StorageError(USER_EXISTS) if the email is already registered.
        """
        op = "storage.sql.save_user"
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.insert().values(email=email, pass_hash=pass_hash))
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise StorageError(StorageErrorKind.USER_EXISTS, op) from exc

    # ------------------------------------------------------------------
    # UserProvider
    # ------------------------------------------------------------------

    def user(self, email: str) -> User:
        """Look up a user by exact email. Raises StorageError(USER_NOT_FOUND)."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise StorageError(StorageErrorKind.USER_NOT_FOUND, "storage.sql.user")
        return _row_to_user(row)

    def is_admin(self, user_id: int) -> bool:
        """Return the admin flag for user_id. Raises StorageError(USER_NOT_FOUND)."""
        with self.engine.connect() as conn:
            flag = conn.execute(select(_users.c.is_admin).where(_users.c.id == user_id)).fetchone()
        if flag is None:
            raise StorageError(StorageErrorKind.USER_NOT_FOUND, "storage.sql.is_admin")
        return bool(flag[0])

    # ------------------------------------------------------------------
    # AppProvider
    # ------------------------------------------------------------------

    def app(self, app_id: int) -> App:
        """Look up an application by id. Raises StorageError(APP_NOT_FOUND)."""
        with self.engine.connect() as conn:
            row = conn.execute(_apps.select().where(_apps.c.id == app_id)).fetchone()
        if row is None:
            raise StorageError(StorageErrorKind.APP_NOT_FOUND, "storage.sql.app")
        return _row_to_app(row)

    # ------------------------------------------------------------------
    # Operator-side writes (never called by the auth service)
    # ------------------------------------------------------------------

    def create_app(self, app: App) -> int:
        """Provision an application. Raises StorageError(APP_EXISTS) on id/name clash.

        An empty secret is rejected with ValueError: tokens for such an app
        could never be signed.
        """
        if not app.secret:
            raise ValueError("app secret must not be empty")
        try:
            with self.engine.begin() as conn:
                conn.execute(_apps.insert().values(id=app.id, name=app.name, secret=app.secret))
        except IntegrityError as exc:
            raise StorageError(StorageErrorKind.APP_EXISTS, "storage.sql.create_app") from exc
        return app.id

    def set_admin(self, user_id: int, is_admin: bool = True) -> None:
        """Set or clear the admin flag. Raises StorageError(USER_NOT_FOUND)."""
        with self.engine.begin() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(is_admin=is_admin))
        if result.rowcount == 0:
            raise StorageError(StorageErrorKind.USER_NOT_FOUND, "storage.sql.set_admin")

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=row.secret)

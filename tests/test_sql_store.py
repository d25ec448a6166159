"""Unit tests for storage/sql.py -- SQLStore capability methods and sentinels.

Covers:
- save_user() assigns ids and reports duplicates as USER_EXISTS
- user() / is_admin() / app() report missing rows with the right kind
- create_app() rejects empty secrets and duplicate ids/names
- set_admin() flips the flag and reports unknown users
"""

import pytest

from auth.models import App
from auth.protocols import StorageError, StorageErrorKind
from storage.sql import SQLStore


@pytest.fixture
def empty_store():
    s = SQLStore("sqlite:///:memory:")
    yield s
    s.close()


def test_save_user_round_trips(empty_store):
    uid = empty_store.save_user("a@example.com", b"$2b$04$hash")
    user = empty_store.user("a@example.com")
    assert user.id == uid
    assert user.email == "a@example.com"
    assert user.pass_hash == b"$2b$04$hash"
    assert user.is_admin is False


def test_save_user_duplicate_email(empty_store):
    empty_store.save_user("a@example.com", b"h1")
    with pytest.raises(StorageError) as exc_info:
        empty_store.save_user("a@example.com", b"h2")
    assert exc_info.value.kind is StorageErrorKind.USER_EXISTS
    assert empty_store.count_users() == 1


def test_email_lookup_is_exact(empty_store):
    empty_store.save_user("Case@Example.com", b"h")
    with pytest.raises(StorageError) as exc_info:
        empty_store.user("case@example.com")
    assert exc_info.value.kind is StorageErrorKind.USER_NOT_FOUND


def test_is_admin_unknown_user(empty_store):
    with pytest.raises(StorageError) as exc_info:
        empty_store.is_admin(1)
    assert exc_info.value.kind is StorageErrorKind.USER_NOT_FOUND


def test_set_admin_flips_flag(empty_store):
    uid = empty_store.save_user("boss@example.com", b"h")
    empty_store.set_admin(uid)
    assert empty_store.is_admin(uid) is True
    empty_store.set_admin(uid, False)
    assert empty_store.is_admin(uid) is False


def test_set_admin_unknown_user(empty_store):
    with pytest.raises(StorageError) as exc_info:
        empty_store.set_admin(99)
    assert exc_info.value.kind is StorageErrorKind.USER_NOT_FOUND


def test_app_lookup(empty_store):
    empty_store.create_app(App(id=10, name="web", secret="s3cr3t"))
    app = empty_store.app(10)
    assert app == App(id=10, name="web", secret="s3cr3t")


def test_app_missing(empty_store):
    with pytest.raises(StorageError) as exc_info:
        empty_store.app(10)
    assert exc_info.value.kind is StorageErrorKind.APP_NOT_FOUND


def test_create_app_rejects_empty_secret(empty_store):
    with pytest.raises(ValueError):
        empty_store.create_app(App(id=1, name="nope", secret=""))


@pytest.mark.parametrize("clash", [App(id=1, name="other", secret="x"), App(id=2, name="web", secret="x")])
def test_create_app_duplicate(empty_store, clash):
    empty_store.create_app(App(id=1, name="web", secret="x"))
    with pytest.raises(StorageError) as exc_info:
        empty_store.create_app(clash)
    assert exc_info.value.kind is StorageErrorKind.APP_EXISTS


def test_ping(empty_store):
    assert empty_store.ping() is True


def test_file_database_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'sso.db'}"
    first = SQLStore(url)
    uid = first.save_user("keep@example.com", b"h")
    first.close()

    second = SQLStore(url)
    assert second.user("keep@example.com").id == uid
    second.close()


def test_database_url_is_required():
    with pytest.raises(TypeError):
        SQLStore()

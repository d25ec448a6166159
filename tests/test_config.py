"""Unit tests for core/config.py and core/logger.py.

Each test clears the variables Settings reads so the host environment cannot
leak in, and runs from an empty tmp dir so no stray .env is picked up.
"""

import logging
from datetime import timedelta

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings, load_settings
from core.logger import setup_logging

_VARS = (
    "ENV",
    "LOG_LEVEL",
    "TOKEN_TTL_SECONDS",
    "BCRYPT_ROUNDS",
    "DATABASE_URL",
    "HOST",
    "PORT",
    "REQUEST_TIMEOUT_SECONDS",
    "CONFIG_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    s = Settings()
    assert s.env == "local"
    assert s.token_ttl == timedelta(hours=1)
    assert s.bcrypt_rounds == 12
    assert s.database_url.startswith("sqlite:///")
    assert s.database_url.endswith("storage/sso.db")
    assert s.request_timeout_seconds == 10.0


def test_env_vars_override(monkeypatch):
    monkeypatch.setenv("TOKEN_TTL_SECONDS", "90")
    monkeypatch.setenv("ENV", "prod")
    s = Settings()
    assert s.token_ttl == timedelta(seconds=90)
    assert s.env == "prod"


@pytest.mark.parametrize(
    "name,value",
    [
        ("TOKEN_TTL_SECONDS", "0"),
        ("BCRYPT_ROUNDS", "3"),
        ("ENV", "staging"),
        ("LOG_LEVEL", "chatty"),
        ("REQUEST_TIMEOUT_SECONDS", "0"),
    ],
)
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()


def test_log_level_normalized(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    assert Settings().log_level == "WARNING"


def test_load_settings_from_file(tmp_path):
    cfg = tmp_path / "local.env"
    cfg.write_text("TOKEN_TTL_SECONDS=120\nBCRYPT_ROUNDS=4\n")
    s = load_settings(str(cfg))
    assert s.token_ttl_seconds == 120
    assert s.bcrypt_rounds == 4


def test_config_path_env_var(monkeypatch, tmp_path):
    cfg = tmp_path / "from-env.env"
    cfg.write_text("PORT=9001\n")
    monkeypatch.setenv("CONFIG_PATH", str(cfg))
    assert load_settings().port == 9001


def test_flag_beats_config_path_env_var(monkeypatch, tmp_path):
    env_cfg = tmp_path / "env.env"
    env_cfg.write_text("PORT=9001\n")
    flag_cfg = tmp_path / "flag.env"
    flag_cfg.write_text("PORT=9002\n")
    monkeypatch.setenv("CONFIG_PATH", str(env_cfg))
    assert load_settings(str(flag_cfg)).port == 9002


def test_missing_config_file_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "nope.env"))


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


@pytest.mark.parametrize("env,level", [("local", logging.DEBUG), ("dev", logging.DEBUG), ("prod", logging.INFO)])
def test_setup_logging_level_by_env(env, level):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(env)
        assert root.level == level
        setup_logging(env, "ERROR")
        assert root.level == logging.ERROR
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

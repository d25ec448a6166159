"""
core/config.py -- Centralized service configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional env file. Field names map to env var names
      (e.g. token_ttl_seconds -> TOKEN_TTL_SECONDS).

  Config path priority: --config flag > CONFIG_PATH env var > ./.env.
      An explicitly named file that does not exist is a startup error; the
      default .env is optional.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or storage/.
"""

import logging
import os
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'storage' / 'sso.db'}"


class Settings(BaseSettings):
    """Service settings loaded from environment variables and an env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    env: Literal["local", "dev", "prod"] = "local"
    # Overrides the env-derived level when set (e.g. LOG_LEVEL=WARNING).
    log_level: Optional[str] = None

    # ------------------------------------------------------------------
    # Tokens and passwords
    # ------------------------------------------------------------------

    token_ttl_seconds: int = Field(default=3600, gt=0)
    # bcrypt work factor. 4 is the library minimum; 31 the maximum.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # HTTP transport
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0, lt=65536)
    # Upper bound on one request, end to end. Exceeding it answers 504.
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Build Settings from an explicit env file, CONFIG_PATH, or the default .env.

    Raises FileNotFoundError when a path was given (flag or CONFIG_PATH) but
    does not exist -- a typo in deployment config must not silently fall back
    to defaults.
    """
    path = config_path or os.environ.get("CONFIG_PATH") or ""
    if not path:
        return Settings()
    if not Path(path).is_file():
        raise FileNotFoundError(f"config file does not exist: {path}")
    logger.debug("Loading settings from %s", path)
    return Settings(_env_file=path)


@lru_cache
def get_settings() -> Settings:
    """Return the service Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return load_settings()

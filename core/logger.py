"""
core/logger.py -- Process-wide logging setup.

Called once by the entry points (CLI and ASGI lifespan). Library modules only
ever call logging.getLogger("sso.<area>") and never configure handlers.

Level by environment:
  local, dev -> DEBUG
  prod       -> INFO
An explicit level (LOG_LEVEL) wins over the environment default.
"""

import logging
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_ENV_LEVELS: dict[str, int] = {
    "local": logging.DEBUG,
    "dev": logging.DEBUG,
    "prod": logging.INFO,
}


def setup_logging(env: str, level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger and return the service logger."""
    resolved = logging.getLevelName(level) if level else _ENV_LEVELS.get(env, logging.INFO)
    logging.basicConfig(level=resolved, format=_FORMAT, datefmt=_DATEFMT, force=True)
    log = logging.getLogger("sso")
    log.debug("Logging configured (env=%s, level=%s)", env, logging.getLevelName(resolved))
    return log

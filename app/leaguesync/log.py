import logging
import os
from typing import Optional

from .config import load_config

log = logging.getLogger("leaguesync")

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _resolve_log_level(registry: Optional[dict] = None) -> int:
    """Level from $LEAGUESYNC_LOG_LEVEL, else the registry's settings.logging.level."""
    env_level = os.getenv("LEAGUESYNC_LOG_LEVEL")
    if env_level:
        return logging._nameToLevel.get(env_level.upper(), logging.INFO)

    cfg = registry if registry is not None else load_config()
    level_name = (cfg.get("settings") or {}).get("logging", {}).get("level", "INFO")
    return logging._nameToLevel.get(str(level_name).upper(), logging.INFO)


def configure_logging(level: Optional[int] = None, registry: Optional[dict] = None) -> None:
    resolved = level if level is not None else _resolve_log_level(registry)
    logging.basicConfig(level=resolved, format=DEFAULT_LOG_FORMAT)

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .models.league import DEFAULT_UNKNOWN_DATE, LeagueConfig

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.getenv(
    "LEAGUESYNC_CONFIG",
    "league-config.json",
)

SETTINGS_KEY = "settings"


class ConfigError(ValueError):
    """Raised when the league registry is missing, malformed or lacks a league."""


@dataclass(frozen=True)
class SyncSettings:
    base_delay: float = 2.5
    timeout: float = 30.0
    max_retries: int = 3
    batch_size: int = 10
    batch_pause_min: float = 15.0
    batch_pause_max: float = 30.0
    league_pause: float = 30.0
    unknown_date: str = DEFAULT_UNKNOWN_DATE

    @staticmethod
    def from_json(data: dict) -> "SyncSettings":
        defaults = SyncSettings()
        return SyncSettings(
            base_delay=float(data.get("base_delay", defaults.base_delay)),
            timeout=float(data.get("timeout", defaults.timeout)),
            max_retries=int(data.get("max_retries", defaults.max_retries)),
            batch_size=int(data.get("batch_size", defaults.batch_size)),
            batch_pause_min=float(data.get("batch_pause_min", defaults.batch_pause_min)),
            batch_pause_max=float(data.get("batch_pause_max", defaults.batch_pause_max)),
            league_pause=float(data.get("league_pause", defaults.league_pause)),
            unknown_date=str(data.get("unknown_date", defaults.unknown_date)),
        )


def load_config(path: str | os.PathLike | None = None) -> dict:
    """
    Load the raw league registry from disk.

    Returns an empty dict when the file is absent so that callers which only
    need ambient settings (logging) keep working.
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        log.error("Config file not found: %s", config_path)
        return {}
    except Exception:
        log.exception("Failed to load config")
        return {}


def load_settings(cfg: dict) -> SyncSettings:
    return SyncSettings.from_json(cfg.get(SETTINGS_KEY) or {})


def load_league_configs(path: str | os.PathLike | None = None) -> dict[str, LeagueConfig]:
    """
    Parse every league entry of the registry.

    data_dir values are resolved relative to the registry's own directory.
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        raise ConfigError(f"League configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid league configuration {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("League configuration must be a JSON object keyed by league")

    settings = load_settings(raw)
    root = config_path.resolve().parent
    leagues: dict[str, LeagueConfig] = {}
    for key, entry in raw.items():
        if key == SETTINGS_KEY:
            continue
        try:
            leagues[key] = LeagueConfig.from_json(
                key, entry, root=root, unknown_date=settings.unknown_date
            )
        except (KeyError, TypeError) as exc:
            raise ConfigError(f"League '{key}' is missing required field {exc}") from exc
    return leagues


def select_leagues(leagues: dict[str, LeagueConfig], selector: str) -> list[str]:
    """Resolve a league selector ("all" or a single key) to an ordered key list."""
    if selector == "all":
        return list(leagues)
    if selector not in leagues:
        available = ", ".join(leagues) or "none"
        raise ConfigError(f'Unknown league: "{selector}". Available: {available}')
    return [selector]

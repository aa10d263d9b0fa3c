import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, List, Optional

from ..models.match import MatchFrames
from ..utils import load_json
from .files import (
    FIXTURES_FILE,
    FRAMES_FILE,
    PLAYER_STATS_FILE,
    PLAYERS_FILE,
    RESULTS_FILE,
    ROSTERS_FILE,
)

log = logging.getLogger("leaguesync.storage")


@dataclass
class ExistingData:
    """
    State persisted by a previous run, as raw JSON.

    Any field may be None when nothing was persisted for it. Used for date
    resolution, incremental frame skipping and the empty-scrape fallback.
    """

    results: Optional[list] = None
    fixtures: Optional[list] = None
    frames: Optional[list] = None
    players: Optional[dict] = None
    player_stats: Optional[dict] = None
    rosters: Optional[dict] = None

    def overlay(self, fallback: "ExistingData") -> "ExistingData":
        """Fields set here win; unset ones come from `fallback`."""
        return ExistingData(
            **{
                f.name: getattr(self, f.name) if getattr(self, f.name) is not None else getattr(fallback, f.name)
                for f in fields(self)
            }
        )

    def frames_by_id(self) -> Dict[str, MatchFrames]:
        out: Dict[str, MatchFrames] = {}
        for raw in self.frames or []:
            try:
                match = MatchFrames.from_json(raw)
            except (KeyError, TypeError, ValueError):
                log.warning("Ignoring malformed frame record: %r", raw)
                continue
            out[match.match_id] = match
        return out

    def date_map(self, unknown_date: Optional[str] = None) -> Dict[str, str]:
        """`home:away` -> date; persisted results win over fixtures."""
        dates: Dict[str, str] = {}
        for entry in self.results or []:
            if entry.get("date") and entry["date"] != unknown_date:
                dates[f"{entry.get('home')}:{entry.get('away')}"] = entry["date"]
        for entry in self.fixtures or []:
            key = f"{entry.get('home')}:{entry.get('away')}"
            if entry.get("date") and key not in dates:
                dates[key] = entry["date"]
        return dates


def _load_list(path: Path) -> Optional[List]:
    data = load_json(path, None)
    return data if isinstance(data, list) else None


def _load_dict(path: Path) -> Optional[Dict]:
    data = load_json(path, None)
    return data if isinstance(data, dict) else None


def load_existing_data(data_dir) -> ExistingData:
    """Read the backups of the previous run from `data_dir`."""
    data_dir = Path(data_dir)
    existing = ExistingData(
        results=_load_list(data_dir / RESULTS_FILE),
        fixtures=_load_list(data_dir / FIXTURES_FILE),
        frames=_load_list(data_dir / FRAMES_FILE),
        players=_load_dict(data_dir / PLAYERS_FILE),
        player_stats=_load_dict(data_dir / PLAYER_STATS_FILE),
        rosters=_load_dict(data_dir / ROSTERS_FILE),
    )
    log.debug(
        "Loaded existing data from %s: %s results, %s frame records",
        data_dir,
        len(existing.results or []),
        len(existing.frames or []),
    )
    return existing

import logging
from pathlib import Path
from typing import Dict, List

from ..utils import save_json

log = logging.getLogger("leaguesync.storage")

RESULTS_FILE = "results.json"
FIXTURES_FILE = "fixtures.json"
ROSTERS_FILE = "rosters.json"
PLAYER_STATS_FILE = "player_stats.json"
FRAMES_FILE = "frames.json"
# Prior-season player stats. Read only; maintained by hand.
PLAYERS_FILE = "players.json"

BACKUP_FILES = {
    "results": RESULTS_FILE,
    "fixtures": FIXTURES_FILE,
    "rosters": ROSTERS_FILE,
    "player_stats": PLAYER_STATS_FILE,
    "frames": FRAMES_FILE,
}


def write_backups(data_dir, artifacts: Dict[str, object]) -> List[Path]:
    """
    Overwrite the five backup snapshots in `data_dir`, creating it if needed.

    `artifacts` is keyed like BACKUP_FILES and holds JSON-ready values.
    """
    data_dir = Path(data_dir)
    written = []
    for name, filename in BACKUP_FILES.items():
        path = save_json(data_dir / filename, artifacts[name])
        log.info("%s: %.1f KB", filename, path.stat().st_size / 1024)
        written.append(path)
    return written

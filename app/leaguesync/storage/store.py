"""
Durable multi-league document store.

Layout:

    leagues/{league_id}                              league metadata
    leagues/{league_id}/seasons/{season_id}          season snapshot
    leagues/{league_id}/seasons/{season_id}/frames/  one doc per match
    leagues/{league_id}/syncMetadata/latest          last successful sync
    players_index/{league_id}_{season_id}            player search summary
    seasons/{season_id}                              legacy copy, first league only
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

from ..models.league import LeagueConfig
from .state import ExistingData

log = logging.getLogger("leaguesync.store")

LEGACY_LEAGUE_ID = "wrexham"
BATCH_LIMIT = 500


class LeagueStore(Protocol):
    def get_document(self, path: str) -> Optional[dict]: ...

    def set_document(self, path: str, data: dict) -> None: ...

    def set_documents(self, docs: List[Tuple[str, dict]]) -> None: ...

    def list_documents(self, collection_path: str) -> List[dict]: ...


class FirestoreStore:
    """LeagueStore backed by Cloud Firestore. The SDK is imported on first use."""

    def __init__(self, project: Optional[str] = None, client=None):
        self.project = project
        self._client = client

    def _get_client(self):
        if self._client is None:
            from google.cloud import firestore

            self._client = firestore.Client(project=self.project)
        return self._client

    def get_document(self, path: str) -> Optional[dict]:
        snap = self._get_client().document(path).get()
        return snap.to_dict() if snap.exists else None

    def set_document(self, path: str, data: dict) -> None:
        self._get_client().document(path).set(data)

    def set_documents(self, docs: List[Tuple[str, dict]]) -> None:
        client = self._get_client()
        for i in range(0, len(docs), BATCH_LIMIT):
            batch = client.batch()
            for path, data in docs[i:i + BATCH_LIMIT]:
                batch.set(client.document(path), data)
            batch.commit()

    def list_documents(self, collection_path: str) -> List[dict]:
        return [snap.to_dict() for snap in self._get_client().collection(collection_path).stream()]


@dataclass
class SeasonPayload:
    results: List[dict] = field(default_factory=list)
    fixtures: List[dict] = field(default_factory=list)
    frames: List[dict] = field(default_factory=list)
    players: Dict = field(default_factory=dict)
    player_stats: Dict = field(default_factory=dict)
    rosters: Dict = field(default_factory=dict)
    divisions: Dict = field(default_factory=dict)


def league_path(config: LeagueConfig) -> str:
    return f"leagues/{config.league_id}"


def season_path(config: LeagueConfig) -> str:
    return f"{league_path(config)}/seasons/{config.season_id}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def season_document(payload: SeasonPayload, config: LeagueConfig, updated_ms: int) -> dict:
    # Frames live in their own sub-collection to keep the season doc small.
    return {
        "results": payload.results,
        "fixtures": payload.fixtures,
        "players": payload.players,
        "rosters": payload.rosters,
        "playerStats": payload.player_stats,
        "divisions": payload.divisions,
        "lastUpdated": updated_ms,
        "lastSyncedFrom": config.site,
    }


def player_index_document(player_stats: dict, config: LeagueConfig, updated_ms: int) -> dict:
    players = {}
    for name, stat in player_stats.items():
        total = stat.get("total", {})
        players[name] = {
            "p": total.get("p", 0),
            "w": total.get("w", 0),
            "pct": total.get("pct", 0),
            "teams": [t.get("team") for t in stat.get("teams", [])],
        }
    return {
        "leagueId": config.league_id,
        "seasonId": config.season_id,
        "leagueName": config.league_name,
        "leagueShortName": config.short_name,
        "players": players,
        "lastUpdated": updated_ms,
    }


def _write_player_index(store: LeagueStore, payload: SeasonPayload, config: LeagueConfig, updated_ms: int) -> None:
    index_id = f"{config.league_id}_{config.season_id}"
    try:
        doc = player_index_document(payload.player_stats, config, updated_ms)
        store.set_document(f"players_index/{index_id}", doc)
        log.info("Store: players_index/%s written (%s players)", index_id, len(doc["players"]))
    except Exception:
        log.warning("Failed to write player index %s", index_id, exc_info=True)


def publish_league(
    store: LeagueStore,
    config: LeagueConfig,
    payload: SeasonPayload,
    updated_ms: Optional[int] = None,
) -> bool:
    """
    Upsert one league season. Returns False when the store write failed.

    Failures are logged and swallowed: the local backups are already on disk
    and feed the next incremental run.
    """
    updated_ms = updated_ms if updated_ms is not None else _now_ms()
    path = season_path(config)
    try:
        doc = season_document(payload, config, updated_ms)
        store.set_document(path, doc)

        store.set_documents([(f"{path}/frames/{m['match_id']}", m) for m in payload.frames])
        log.info("Store: %s frame docs written to %s/frames", len(payload.frames), path)

        if config.league_id == LEGACY_LEAGUE_ID:
            store.set_document(f"seasons/{config.season_id}", doc)
            log.info("Store: legacy seasons/%s written", config.season_id)

        _write_player_index(store, payload, config, updated_ms)

        # Season metadata is curated by hand once the league exists.
        if store.get_document(league_path(config)) is None:
            store.set_document(
                league_path(config),
                {"name": config.league_name, "shortName": config.short_name, "seasons": []},
            )
            log.info("Store: created league metadata %s", league_path(config))

        log.info("Store: %s written successfully", path)
        return True
    except Exception:
        log.exception("Store write failed for %s; JSON backups were still written", path)
        return False


def write_sync_metadata(store: LeagueStore, config: LeagueConfig, summary: dict) -> bool:
    path = f"{league_path(config)}/syncMetadata/latest"
    try:
        store.set_document(path, {"success": True, "syncedAt": _now_ms(), **summary})
        log.info("Sync metadata written to %s", path)
        return True
    except Exception:
        log.warning("Failed to write sync metadata %s", path, exc_info=True)
        return False


def load_existing_data_from_store(store: LeagueStore, config: LeagueConfig) -> ExistingData:
    """Previous season state as held in the store, for runs without local backups."""
    doc = store.get_document(season_path(config)) or {}
    frames = store.list_documents(f"{season_path(config)}/frames")
    return ExistingData(
        results=doc.get("results"),
        fixtures=doc.get("fixtures"),
        frames=frames or None,
        players=doc.get("players"),
        player_stats=doc.get("playerStats"),
        rosters=doc.get("rosters"),
    )

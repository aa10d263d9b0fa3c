"""
Single-league sync.

Stages run strictly in order:

    standings -> team results (+ cup) -> date resolution -> frame detail
    -> fixtures (+ cup) -> aggregation -> merge with existing -> persist

Any exception aborts the league and is reported as a failed LeagueReport.
"""
import logging
import time
from typing import Dict, List, Optional

from ..config import SyncSettings
from ..models.league import LeagueConfig
from ..models.match import Fixture, MatchFrames, Result
from ..models.report import LeagueReport
from ..storage.files import write_backups
from ..storage.state import ExistingData, load_existing_data
from ..storage.store import (
    FirestoreStore,
    LeagueStore,
    SeasonPayload,
    publish_league,
    write_sync_metadata,
)
from ..utils import iso_now
from .aggregate import aggregate_player_stats
from .fetch import BatchThrottle, FetchClient
from .filtering import ResultsCollector
from .incremental import plan_frame_fetches
from .merge import MergeStrategy
from .parsers import (
    parse_cup_fixtures,
    parse_cup_results,
    parse_fixtures,
    parse_frame_details,
    parse_standings,
    parse_team_matches,
)
from .players import PlayerNormalizer, corrections_loader

log = logging.getLogger("leaguesync.sync")

STANDINGS_PAGE = "table5.php"
FIXTURES_PAGE = "fixture1.php"
CUP_RESULTS_PAGE = "results.php"
CUP_DIVISION_NAME = "Cup"


def scrape_standings(client: FetchClient, config: LeagueConfig) -> Dict[str, List[str]]:
    division_teams: Dict[str, List[str]] = {}
    for div in config.divisions:
        html = client.get(client.build_url(STANDINGS_PAGE, sel_group=div.site_group))
        teams = parse_standings(html, config.team_name_map)
        if not teams:
            log.warning("%s: no teams found in standings", div.code)
        log.info("%s: %s teams", div.code, len(teams))
        division_teams[div.code] = teams
    return division_teams


def divisions_map(config: LeagueConfig, division_teams: Dict[str, List[str]]) -> Dict[str, dict]:
    return {
        div.code: {"name": div.display_name, "teams": division_teams.get(div.code, [])}
        for div in config.divisions
    }


def scrape_team_results(
    client: FetchClient,
    config: LeagueConfig,
    division_teams: Dict[str, List[str]],
    collector: ResultsCollector,
) -> None:
    for div in config.divisions:
        for team in division_teams.get(div.code, []):
            url = client.build_url(STANDINGS_PAGE, act1="details1", name=config.site_team_name(team))
            collector.extend(parse_team_matches(client.get(url), div.code, config.team_name_map))

    if collector.cross_league_filtered:
        log.info("Filtered %s cross-league matches", collector.cross_league_filtered)
    log.info("Total unique results: %s", len(collector.results))


def resolve_dates(results: List[Result], date_map: Dict[str, str], unknown_date: str) -> int:
    """
    Fill result dates from previously persisted results and fixtures.

    Team pages carry no date column. Matches with no known pairing get
    `unknown_date`. Returns how many were unresolved.
    """
    missing = 0
    for result in results:
        date = date_map.get(result.pairing)
        if date:
            result.date = date
            continue
        missing += 1
        result.date = unknown_date
        log.warning(
            "No date for %s vs %s (match %s), using %s",
            result.home,
            result.away,
            result.match_id,
            unknown_date,
        )
    log.info("Dates resolved: %s, missing: %s", len(results) - missing, missing)
    return missing


def scrape_cup_results(
    client: FetchClient,
    config: LeagueConfig,
    collector: ResultsCollector,
    divisions: Dict[str, dict],
) -> None:
    for cup in config.cup_groups:
        html = client.get(client.build_url(CUP_RESULTS_PAGE, sel_group=cup.site_group))
        cup_results = parse_cup_results(html, cup.code, config.team_name_map)
        teams = set()
        for result in cup_results:
            collector.add_unfiltered(result)
            teams.update((result.home, result.away))
        divisions[cup.code] = {"name": CUP_DIVISION_NAME, "teams": sorted(teams)}
        log.info("%s: %s cup results", cup.code, len(cup_results))


def scrape_frames(
    client: FetchClient,
    config: LeagueConfig,
    results: List[Result],
    existing_frames: Dict[str, MatchFrames],
    throttle: BatchThrottle,
    full: bool = False,
):
    """
    Frame detail for every league match, fetching only what is not on record.

    Cup results have no detail pages. Previously captured matches that were
    not listed this run are carried over unless `full` is set. Returns
    (frames, skipped).
    """
    league_results = [r for r in results if not r.cup]
    plan = plan_frame_fetches([r.match_id for r in league_results], existing_frames, full=full)
    to_fetch = set(plan.to_fetch)

    frames: List[MatchFrames] = []
    fetched = 0
    for result in league_results:
        if result.match_id in plan.reused:
            frames.append(plan.reused.pop(result.match_id))
            continue
        if result.match_id not in to_fetch:
            continue
        to_fetch.discard(result.match_id)

        throttle.before_request()
        fetched += 1
        url = client.build_url(
            STANDINGS_PAGE,
            act1="details1",
            name=config.site_team_name(result.home),
            act2="details2",
            matchid=result.match_id,
        )
        parsed = parse_frame_details(client.get(url))
        if not parsed:
            log.warning("Match %s: no frames found, skipping", result.match_id)
            continue
        frames.append(
            MatchFrames(
                match_id=result.match_id,
                date=result.date,
                home=result.home,
                away=result.away,
                division=result.division,
                frames=parsed,
            )
        )

    if not full:
        listed = {m.match_id for m in frames} | {r.match_id for r in league_results}
        frames.extend(m for m_id, m in existing_frames.items() if m_id not in listed and m.frames)

    if plan.skipped:
        log.info("Incremental: skipped %s already-scraped matches, fetched %s new", plan.skipped, fetched)
    log.info("Total matches with frames: %s", len(frames))
    return frames, plan.skipped


def scrape_fixtures(client: FetchClient, config: LeagueConfig) -> List[Fixture]:
    fixtures: List[Fixture] = []
    for div in config.divisions:
        html = client.get(client.build_url(FIXTURES_PAGE, sel_group=div.site_group))
        div_fixtures = parse_fixtures(html, div.code, config.team_name_map)
        log.info("%s: %s fixtures", div.code, len(div_fixtures))
        fixtures.extend(div_fixtures)
    for cup in config.cup_groups:
        html = client.get(client.build_url(FIXTURES_PAGE, sel_group=cup.site_group))
        cup_fixtures = parse_cup_fixtures(html, cup.code, config.team_name_map)
        log.info("%s: %s cup fixtures", cup.code, len(cup_fixtures))
        fixtures.extend(cup_fixtures)
    log.info("Total fixtures: %s", len(fixtures))
    return fixtures


def sync_league(
    config: LeagueConfig,
    *,
    client: Optional[FetchClient] = None,
    normalizer: Optional[PlayerNormalizer] = None,
    store: Optional[LeagueStore] = None,
    dry_run: bool = False,
    full: bool = False,
    write_json_files: bool = True,
    existing: Optional[ExistingData] = None,
    merge_strategy: MergeStrategy = MergeStrategy.PREFER_NEW_UNLESS_EMPTY,
    throttle: Optional[BatchThrottle] = None,
    settings: Optional[SyncSettings] = None,
) -> LeagueReport:
    settings = settings or SyncSettings()
    client = client or FetchClient(
        config.site,
        base_delay=settings.base_delay,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
    )
    throttle = throttle or BatchThrottle(
        settings.batch_size,
        settings.batch_pause_min,
        settings.batch_pause_max,
    )
    normalizer = normalizer or PlayerNormalizer(corrections_loader(config.data_dir))
    client.reset()

    started_at = iso_now()
    started = time.monotonic()

    def elapsed_ms() -> int:
        return int((time.monotonic() - started) * 1000)

    log.info("=== LeagueAppLive sync: %s (%s) ===", config.league_name, config.key)
    log.info("Season: %s, output: %s", config.season_id, config.data_dir)
    if dry_run:
        log.warning("Mode: DRY RUN (store writes skipped)")
    if full:
        log.info("Mode: FULL (re-fetching all frame detail)")

    try:
        disk = load_existing_data(config.data_dir)
        prior = existing.overlay(disk) if existing is not None else disk

        log.info("Step 1: Scraping standings...")
        division_teams = scrape_standings(client, config)
        divisions = divisions_map(config, division_teams)
        known_teams = {t for teams in division_teams.values() for t in teams}

        log.info("Step 2: Scraping team results...")
        collector = ResultsCollector(known_teams)
        scrape_team_results(client, config, division_teams, collector)
        unresolved = resolve_dates(collector.results, prior.date_map(config.unknown_date), config.unknown_date)
        if config.cup_groups:
            scrape_cup_results(client, config, collector, divisions)
        results = collector.results

        log.info("Step 3: Scraping frame details...")
        frames, skipped = scrape_frames(client, config, results, prior.frames_by_id(), throttle, full=full)

        log.info("Step 4: Scraping fixtures...")
        fixtures = scrape_fixtures(client, config)

        log.info("Step 5: Aggregating player stats...")
        aggregation = aggregate_player_stats(frames, normalizer)
        log.info("Players from frames: %s, roster entries: %s", len(aggregation.players), len(aggregation.rosters))

        player_stats, kept = merge_strategy.choose(aggregation.players_json(), prior.player_stats)
        if kept:
            log.warning("No frame data scraped, keeping existing player stats")
        rosters, kept = merge_strategy.choose(aggregation.rosters, prior.rosters)
        if kept:
            log.warning("No frame data scraped, keeping existing rosters")

        results_json = [r.to_json() for r in results]
        fixtures_json = [f.to_json() for f in fixtures]
        frames_json = [m.to_json() for m in frames]

        if write_json_files:
            log.info("Step 6: Writing JSON backup files...")
            write_backups(
                config.data_dir,
                {
                    "results": results_json,
                    "fixtures": fixtures_json,
                    "rosters": rosters,
                    "player_stats": player_stats,
                    "frames": frames_json,
                },
            )
        else:
            log.info("Step 6: Skipping JSON backup files")

        report = LeagueReport(
            league=config.key,
            success=True,
            results=len(results),
            fixtures=len(fixtures),
            frames=len(frames),
            players=len(player_stats),
            request_count=client.request_count,
            skipped_frames=skipped,
            cross_league_filtered=collector.cross_league_filtered,
            unresolved_dates=unresolved,
            started_at=started_at,
        )

        if dry_run:
            log.warning("Step 7: Skipping store write (dry run)")
        else:
            log.info("Step 7: Writing to store...")
            store = store or FirestoreStore()
            payload = SeasonPayload(
                results=results_json,
                fixtures=fixtures_json,
                frames=frames_json,
                players=prior.players or {},
                player_stats=player_stats,
                rosters=rosters,
                divisions=divisions,
            )
            if publish_league(store, config, payload):
                write_sync_metadata(
                    store,
                    config,
                    {
                        "results": report.results,
                        "fixtures": report.fixtures,
                        "frames": report.frames,
                        "players": report.players,
                        "requestCount": report.request_count,
                        "skippedFrames": report.skipped_frames,
                        "durationMs": elapsed_ms(),
                        "source": "manual" if write_json_files else "cloud-function",
                    },
                )

        report.duration_ms = elapsed_ms()
        report.finished_at = iso_now()
        log.info(
            "=== Sync complete: %s results, %s fixtures, %s matches with frames, "
            "%s players, %s requests, %s skipped, %ss ===",
            report.results,
            report.fixtures,
            report.frames,
            report.players,
            report.request_count,
            report.skipped_frames,
            round(report.duration_ms / 1000),
        )
        return report
    except Exception as exc:
        log.exception("Sync failed for league %s", config.key)
        return LeagueReport.failed(
            config.key,
            str(exc),
            request_count=client.request_count,
            duration_ms=elapsed_ms(),
            started_at=started_at,
            finished_at=iso_now(),
        )

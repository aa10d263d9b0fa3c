"""Sync one or all configured leagues and report the outcome."""
import argparse
import logging
import os
import time
from typing import Callable, Dict, List, Optional

from .config import ConfigError, load_config, load_league_configs, load_settings, select_leagues
from .log import configure_logging
from .models.league import LeagueConfig
from .models.report import LeagueReport, RunReport
from .services.sync import sync_league
from .storage.state import ExistingData
from .storage.store import FirestoreStore, load_existing_data_from_store
from .utils import iso_now, make_table, save_json

log = logging.getLogger("leaguesync.sync_all")

REPORT_FILE = "sync-report.json"
STEP_SUMMARY_ENV = "GITHUB_STEP_SUMMARY"

SUMMARY_HEADERS = ["League", "Status", "Results", "Fixtures", "Frames", "Requests", "Skipped", "Duration"]


def run_leagues(
    configs: Dict[str, LeagueConfig],
    keys: List[str],
    *,
    dry_run: bool = False,
    full: bool = False,
    pause_seconds: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
    sync: Callable[..., LeagueReport] = sync_league,
    existing_loader: Optional[Callable[[LeagueConfig], Optional[ExistingData]]] = None,
    **sync_kwargs,
) -> RunReport:
    """
    Sync each league in order, pausing between leagues.

    A league that fails, or whose sync raises, is recorded as failed and the
    remaining leagues still run.
    """
    report = RunReport(timestamp=iso_now())
    for i, key in enumerate(keys):
        if i > 0 and pause_seconds > 0:
            log.info("Pausing %ss before next league...", round(pause_seconds))
            sleep(pause_seconds)

        log.info("===== Syncing league: %s =====", key)
        started = time.monotonic()
        try:
            config = configs[key]
            existing = existing_loader(config) if existing_loader else None
            result = sync(config, dry_run=dry_run, full=full, existing=existing, **sync_kwargs)
        except Exception as exc:
            log.exception("League %s failed", key)
            result = LeagueReport.failed(
                key, str(exc), duration_ms=int((time.monotonic() - started) * 1000)
            )

        if result.success:
            log.info(
                "%s: OK (%s results, %s frames, %s requests)",
                key,
                result.results,
                result.frames,
                result.request_count,
            )
        else:
            log.error("%s: FAILED - %s", key, result.error)
        report.leagues.append(result)
    return report


def _summary_rows(report: RunReport) -> List[list]:
    return [
        [
            r.league,
            "OK" if r.success else "FAILED",
            r.results,
            r.fixtures,
            r.frames,
            r.request_count,
            r.skipped_frames,
            f"{round(r.duration_ms / 1000)}s",
        ]
        for r in report.leagues
    ]


def format_summary(report: RunReport) -> str:
    table = make_table(SUMMARY_HEADERS, _summary_rows(report))
    overall = "ALL SUCCEEDED" if report.all_succeeded else "SOME FAILED"
    return f"{table}\n\nOverall: {overall}"


def write_run_report(report: RunReport, path=REPORT_FILE):
    path = save_json(path, report.to_json())
    log.info("Report written to %s", path)
    return path


def write_step_summary(report: RunReport, path) -> None:
    """Append a markdown summary, as CI step summaries expect."""
    lines = [
        "## League Sync Report",
        "",
        "| " + " | ".join(SUMMARY_HEADERS) + " |",
        "|" + "---|" * len(SUMMARY_HEADERS),
    ]
    for row in _summary_rows(report):
        lines.append("| " + " | ".join(str(cell) for cell in row) + " |")

    failed = [r for r in report.leagues if not r.success]
    if failed:
        lines += ["", "### Errors", ""]
        lines += [f"- **{r.league}**: {r.error}" for r in failed]

    with open(path, "a", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrape LeagueAppLive leagues and sync them to backups and the store.",
    )
    parser.add_argument(
        "--league",
        default="all",
        help='League key from the registry, or "all".',
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write local backups only; skip the store.",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Re-fetch frame detail for every match.",
    )
    parser.add_argument(
        "--config",
        help="Path to league-config.json (default: $LEAGUESYNC_CONFIG).",
    )
    parser.add_argument(
        "--report",
        default=REPORT_FILE,
        help="Where to write the JSON run report.",
    )
    parser.add_argument(
        "--from-store",
        action="store_true",
        help="Load previous state from the store instead of local backups.",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    registry = load_config(args.config)
    configure_logging(registry=registry)

    try:
        leagues = load_league_configs(args.config)
        keys = select_leagues(leagues, args.league)
    except ConfigError as exc:
        log.error("%s", exc)
        return 1

    settings = load_settings(registry)
    store = None if args.dry_run else FirestoreStore()
    existing_loader = None
    if args.from_store and store is not None:
        def existing_loader(config):
            return load_existing_data_from_store(store, config)

    log.info("Syncing %s league(s): %s", len(keys), ", ".join(keys))
    report = run_leagues(
        leagues,
        keys,
        dry_run=args.dry_run,
        full=args.full,
        pause_seconds=settings.league_pause,
        sync=sync_league,
        existing_loader=existing_loader,
        store=store,
        settings=settings,
    )

    log.info("Summary:\n%s", format_summary(report))
    write_run_report(report, args.report)
    summary_path = os.getenv(STEP_SUMMARY_ENV)
    if summary_path:
        write_step_summary(report, summary_path)

    return 0 if report.all_succeeded else 1


if __name__ == "__main__":
    raise SystemExit(main())

import json
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

from leaguesync.models.league import Division, LeagueConfig
from leaguesync.services.fetch import BatchThrottle, FetchClient
from leaguesync.services.players import Corrections, PlayerNormalizer
from leaguesync.services.sync import resolve_dates, sync_league
from leaguesync.storage.files import BACKUP_FILES
from leaguesync.storage.state import ExistingData
from leaguesync.models.match import Result


def _standings(*teams):
    rows = "".join(
        f'<tr><td><a href="table5.php?sitename=testsite&act1=details1&name={t}">{t}</a></td><td>3</td></tr>'
        for t in teams
    )
    return f"<table>{rows}</table>"


def _team_page(*matches):
    rows = "".join(
        f"<tr><td>{home}</td><td>{away}</td><td>{hs}</td><td>{as_}</td>"
        f'<td><a href="table5.php?act1=details1&name={home}&act2=details2&matchid={mid}">Show Frames</a></td></tr>'
        for mid, home, away, hs, as_ in matches
    )
    return f"<table>{rows}</table>"


def _frames_page(*frames):
    rows = ""
    for home, away, home_won in frames:
        cells = ["1", "1", home, "", "", "", away, "", "", "", home_won, "0" if home_won == "1" else "1", "", ""]
        rows += "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"
    return f"<table>{rows}</table>"


M101 = ("101", "Rovers", "Turf", 6, 4)
M102 = ("102", "Turf", "Magnet", 5, 5)
M103 = ("103", "Magnet", "Rovers", 0, 0)
M104 = ("104", "Turf", "Visitors", 7, 3)

PAGES = {
    "standings": {"Sunday Division 1": _standings("Rovers", "Turf", "Magnet")},
    "teams": {
        "Rovers": _team_page(M101, M103),
        "Turf": _team_page(M101, M102, M104),
        "Magnet": _team_page(M102, M103),
    },
    "frames": {
        "101": _frames_page(("Bob Smith", "Al Jones", "1"), ("Dave Lee", "Tom Hart", "0")),
        "102": _frames_page(("Al Jones", "Ian Rees", "1"), ("Tom Hart & Al Jones", "Ian Rees & Joe Bloggs", "0")),
    },
    "fixtures": {
        "Sunday Division 1": "<table><tr><td>21-09-2025</td><td>19:30</td><td>Magnet</td><td>Rovers</td></tr></table>",
        "Knockout Cup": "<table><tr><td>28-09-2025</td><td>20:00</td><td>Rovers</td><td>Magnet</td></tr></table>",
    },
    "cup": {
        "Knockout Cup": (
            "<table><tr><td>05-10-2025</td><td>20:00</td><td>Turf</td>"
            "<td>11 - 9</td><td>Rovers</td></tr></table>"
        ),
    },
}


class FakeSite:
    """Serves canned LeagueAppLive pages by query parameters."""

    def __init__(self, pages=PAGES, status=200):
        self.pages = pages
        self.status = status
        self.urls = []

    def get(self, url, headers=None, timeout=None):
        self.urls.append(url)
        parsed = urlparse(url)
        page = parsed.path.rsplit("/", 1)[-1]
        q = {k: v[0] for k, v in parse_qs(parsed.query).items()}

        if page == "table5.php" and "matchid" in q:
            text = self.pages["frames"].get(q["matchid"], "")
        elif page == "table5.php" and q.get("act1") == "details1":
            text = self.pages["teams"].get(q["name"], "")
        elif page == "table5.php":
            text = self.pages["standings"].get(q["sel_group"], "")
        elif page == "fixture1.php":
            text = self.pages["fixtures"].get(q["sel_group"], "")
        else:
            text = self.pages["cup"].get(q["sel_group"], "")

        resp = MagicMock()
        resp.status_code = self.status
        resp.text = text
        return resp


def _config(tmp_path, **overrides):
    fields = dict(
        key="testleague",
        site="testsite",
        league_id="testleague",
        season_id="2526",
        league_name="Test League",
        short_name="Test",
        data_dir=tmp_path / "data",
        divisions=(Division("SD1", "Sunday Division 1"),),
    )
    fields.update(overrides)
    return LeagueConfig(**fields)


def _run(config, site=None, **kwargs):
    site = site or FakeSite()
    client = FetchClient(config.site, session=site, sleep=lambda s: None)
    kwargs.setdefault("dry_run", True)
    report = sync_league(
        config,
        client=client,
        normalizer=PlayerNormalizer(loader=Corrections),
        throttle=BatchThrottle(sleep=lambda s: None),
        **kwargs,
    )
    return report, site


def _backup(config, name):
    return json.loads((config.data_dir / BACKUP_FILES[name]).read_text(encoding="utf-8"))


def test_sync_scrapes_filters_and_writes_backups(tmp_path):
    config = _config(tmp_path)

    report, site = _run(config)

    assert report.success is True
    assert report.results == 2
    assert report.cross_league_filtered == 1
    assert report.frames == 2
    assert report.fixtures == 1
    assert report.unresolved_dates == 2
    # 1 standings + 3 team pages + 2 frame pages + 1 fixtures page
    assert report.request_count == 7
    assert len(site.urls) == 7

    results = _backup(config, "results")
    assert [r["match_id"] for r in results] == ["101", "102"]
    assert all(r["date"] == "01-01-2026" for r in results)
    assert "Al Jones" in _backup(config, "player_stats")
    assert _backup(config, "rosters")["SD1:Magnet"] == ["Ian Rees", "Joe Bloggs"]


def test_dates_resolved_from_persisted_fixtures(tmp_path):
    config = _config(tmp_path)
    config.data_dir.mkdir(parents=True)
    (config.data_dir / "fixtures.json").write_text(
        json.dumps([{"date": "07-09-2025", "home": "Rovers", "away": "Turf", "division": "SD1"}]),
        encoding="utf-8",
    )

    report, _ = _run(config)

    dates = {r["match_id"]: r["date"] for r in _backup(config, "results")}
    assert dates == {"101": "07-09-2025", "102": "01-01-2026"}
    assert report.unresolved_dates == 1


def test_preloaded_existing_data_wins_over_disk(tmp_path):
    config = _config(tmp_path)
    existing = ExistingData(
        results=[{"date": "14-09-2025", "home": "Turf", "away": "Magnet"}],
    )

    _run(config, existing=existing)

    dates = {r["match_id"]: r["date"] for r in _backup(config, "results")}
    assert dates["102"] == "14-09-2025"


def test_second_run_skips_known_matches_and_is_byte_identical(tmp_path):
    config = _config(tmp_path)

    _run(config)
    first = {name: (config.data_dir / f).read_bytes() for name, f in BACKUP_FILES.items()}

    report, site = _run(config)
    second = {name: (config.data_dir / f).read_bytes() for name, f in BACKUP_FILES.items()}

    assert report.skipped_frames == 2
    assert report.request_count == 5
    assert not any("matchid=" in url for url in site.urls)
    assert first == second


def test_full_mode_refetches_known_matches(tmp_path):
    config = _config(tmp_path)
    _run(config)

    report, site = _run(config, full=True)

    assert report.skipped_frames == 0
    assert sum("matchid=" in url for url in site.urls) == 2


def test_empty_scrape_keeps_existing_player_stats(tmp_path):
    config = _config(tmp_path)
    config.data_dir.mkdir(parents=True)
    prior_stats = {"Bob Smith": {"teams": [], "total": {"p": 10, "w": 6, "pct": 60.0}}}
    prior_rosters = {"SD1:Rovers": ["Bob Smith"]}
    (config.data_dir / "player_stats.json").write_text(json.dumps(prior_stats), encoding="utf-8")
    (config.data_dir / "rosters.json").write_text(json.dumps(prior_rosters), encoding="utf-8")
    pages = dict(PAGES, frames={})

    report, _ = _run(config, site=FakeSite(pages))

    assert report.success is True
    assert report.frames == 0
    assert report.players == 1
    assert _backup(config, "player_stats") == prior_stats
    assert _backup(config, "rosters") == prior_rosters


def test_cup_results_are_kept_but_never_fetched_for_frames(tmp_path):
    config = _config(tmp_path, cup_groups=(Division("KO", "Knockout Cup"),))

    report, site = _run(config)

    assert report.results == 3
    assert report.fixtures == 2
    assert not any("cup-" in url for url in site.urls)
    cup = [r for r in _backup(config, "results") if r.get("cup")]
    assert cup[0]["match_id"] == "cup-05-10-2025-Turf-Rovers"
    assert cup[0]["date"] == "05-10-2025"


def test_dry_run_skips_store(tmp_path):
    store = MagicMock()

    report, _ = _run(_config(tmp_path), store=store, dry_run=True)

    assert report.success is True
    store.set_document.assert_not_called()


def test_store_receives_season_frames_and_metadata(tmp_path):
    store = MagicMock()
    store.get_document.return_value = None

    report, _ = _run(_config(tmp_path), store=store, dry_run=False)

    assert report.success is True
    paths = [c.args[0] for c in store.set_document.call_args_list]
    assert "leagues/testleague/seasons/2526" in paths
    assert "leagues/testleague" in paths
    assert "players_index/testleague_2526" in paths
    assert "leagues/testleague/syncMetadata/latest" in paths
    assert "seasons/2526" not in paths
    frame_docs = store.set_documents.call_args.args[0]
    assert [path for path, _ in frame_docs] == [
        "leagues/testleague/seasons/2526/frames/101",
        "leagues/testleague/seasons/2526/frames/102",
    ]


def test_store_failure_does_not_fail_sync(tmp_path):
    config = _config(tmp_path)
    store = MagicMock()
    store.set_document.side_effect = RuntimeError("store unavailable")

    report, _ = _run(config, store=store, dry_run=False)

    assert report.success is True
    assert (config.data_dir / "results.json").exists()


def test_fetch_failure_yields_failed_report(tmp_path):
    report, site = _run(_config(tmp_path), site=FakeSite(status=404))

    assert report.success is False
    assert "404" in report.error
    assert report.request_count == 1
    assert report.finished_at is not None


def test_resolve_dates_uses_sentinel_for_unknown_pairings():
    results = [
        Result("", "A", "B", 6, 4, "SD1", 10, "1"),
        Result("", "B", "A", 6, 4, "SD1", 10, "2"),
    ]

    missing = resolve_dates(results, {"A:B": "07-09-2025"}, "unknown")

    assert missing == 1
    assert [r.date for r in results] == ["07-09-2025", "unknown"]

"""
Structural extractors for LeagueAppLive pages.

The pages carry no stable ids or classes, so every extractor keys off cell
counts, regex patterns and anchor hrefs, with a fallback where the primary
strategy finds nothing. A page with no qualifying rows yields an empty list.
"""
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from ..models.match import Fixture, Frame, Result, set_for_frame

log = logging.getLogger("leaguesync.parsers")

DEFAULT_FRAMES = 10

NUMERIC_RE = re.compile(r"^\d+$")
DATE_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}$")
CUP_SCORE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")

NAV_LABELS = ("show", "frame")
FIXTURE_LABELS = ("venue", "table")
FRAME_HEADER_LABELS = ("home player", "away player")

MIN_MATCH_CELLS = 4
MIN_FRAME_CELLS = 12
MIN_FIXTURE_CELLS = 4
MIN_CUP_RESULT_CELLS = 5

# Frame detail column offsets.
COL_SET = 0
COL_HOME_PLAYER = 2
COL_AWAY_PLAYER = 6
COL_HOME_WON = 10
COL_AWAY_WON = 11
COL_BREAK_DISH = 12
COL_FORFEIT = 13


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _cell_texts(tr) -> List[str]:
    return [td.get_text(strip=True) for td in tr.find_all("td")]


def _remap(name: str, team_name_map: Optional[Dict[str, str]]) -> str:
    if not team_name_map:
        return name
    return team_name_map.get(name, name)


def _is_numeric(text: str) -> bool:
    return bool(NUMERIC_RE.match(text))


def _flag(texts: List[str], col: int) -> bool:
    if col >= len(texts):
        return False
    return texts[col].lower() in ("1", "yes")


def team_name_from_href(href: str) -> Optional[str]:
    """Decoded `name=` query parameter of a team link, if any."""
    values = parse_qs(urlparse(href).query).get("name")
    if not values:
        return None
    name = values[0].strip()
    return name or None


def match_id_from_href(href: str) -> Optional[str]:
    values = parse_qs(urlparse(href).query).get("matchid")
    if not values:
        return None
    return values[0].strip() or None


# ---- standings ----


def _standings_from_links(soup: BeautifulSoup) -> List[str]:
    names = []
    for a in soup.select('a[href*="act1=details1"]'):
        name = team_name_from_href(a.get("href", ""))
        if name:
            names.append(name)
    return names


def _standings_from_first_cells(soup: BeautifulSoup) -> List[str]:
    names = []
    for tr in soup.find_all("tr"):
        first = tr.find("td")
        if first is None:
            continue
        anchor = first.find("a")
        if anchor is None:
            continue
        name = anchor.get_text(strip=True)
        if name:
            names.append(name)
    return names


def parse_standings(html: str, team_name_map: Optional[Dict[str, str]] = None) -> List[str]:
    """Team names in one division's table, deduplicated in first-seen order."""
    soup = _soup(html)
    names = _standings_from_links(soup)
    if not names:
        names = _standings_from_first_cells(soup)

    teams: List[str] = []
    seen = set()
    for name in names:
        team = _remap(name, team_name_map)
        if team in seen:
            continue
        seen.add(team)
        teams.append(team)
    return teams


# ---- team match listings ----


def _teams_before_score(texts: List[str], score_index: int) -> List[str]:
    return [t for t in texts[:score_index] if len(t) > 1 and not _is_numeric(t)]


def _teams_fallback(texts: List[str]) -> List[str]:
    teams = []
    for t in texts:
        if len(t) <= 1 or _is_numeric(t):
            continue
        if any(label in t.lower() for label in NAV_LABELS):
            continue
        if t not in teams:
            teams.append(t)
    return teams


def parse_team_matches(
    html: str,
    division: str,
    team_name_map: Optional[Dict[str, str]] = None,
) -> List[Result]:
    """
    Completed matches listed on a team's page.

    A qualifying row has at least four cells and a link carrying `matchid=`.
    The first two purely numeric cells are the score; 0-0 rows are fixtures
    that have not been played and are skipped. Dates are not on this page and
    are left empty.
    """
    soup = _soup(html)
    results: List[Result] = []

    for tr in soup.find_all("tr"):
        tds = tr.find_all("td")
        if len(tds) < MIN_MATCH_CELLS:
            continue
        link = tr.select_one('a[href*="matchid="]')
        if link is None:
            continue
        match_id = match_id_from_href(link.get("href", ""))
        if not match_id:
            continue

        texts = [td.get_text(strip=True) for td in tds]
        score_indexes = [i for i, t in enumerate(texts) if _is_numeric(t)]
        if len(score_indexes) < 2:
            continue
        home_score = int(texts[score_indexes[0]])
        away_score = int(texts[score_indexes[1]])
        if home_score == 0 and away_score == 0:
            continue

        teams = _teams_before_score(texts, score_indexes[0])
        if len(teams) < 2:
            teams = _teams_fallback(texts)
        if len(teams) < 2:
            log.debug("Match %s: could not identify teams in row %s", match_id, texts)
            continue

        results.append(
            Result(
                date="",
                home=_remap(teams[0], team_name_map),
                away=_remap(teams[1], team_name_map),
                home_score=home_score,
                away_score=away_score,
                division=division,
                frames=DEFAULT_FRAMES,
                match_id=match_id,
            )
        )
    return results


# ---- frame detail ----


def _is_frame_header(texts: List[str]) -> bool:
    lowered = [t.lower() for t in texts]
    if any(label in t for t in lowered for label in FRAME_HEADER_LABELS):
        return True
    return any(t in ("set", "game") for t in lowered)


def parse_frame_details(html: str) -> List[Frame]:
    """Frame-by-frame rows of one match detail page, numbered in page order."""
    soup = _soup(html)
    frames: List[Frame] = []

    for tr in soup.find_all("tr"):
        texts = _cell_texts(tr)
        if len(texts) < MIN_FRAME_CELLS:
            continue
        if _is_frame_header(texts):
            continue

        home_player = texts[COL_HOME_PLAYER]
        away_player = texts[COL_AWAY_PLAYER]
        if not home_player or not away_player:
            continue
        if _is_numeric(home_player) and _is_numeric(away_player):
            continue

        frame_num = len(frames) + 1
        set_text = texts[COL_SET]
        set_num = int(set_text) if _is_numeric(set_text) and int(set_text) > 0 else set_for_frame(frame_num)

        frames.append(
            Frame(
                frame_num=frame_num,
                set=set_num,
                home_player=home_player,
                away_player=away_player,
                winner="home" if texts[COL_HOME_WON] == "1" else "away",
                break_dish=_flag(texts, COL_BREAK_DISH),
                forfeit=_flag(texts, COL_FORFEIT),
            )
        )
    return frames


# ---- fixtures ----


def _fixture_teams(texts: List[str]) -> List[str]:
    teams = []
    for t in texts:
        if not t or TIME_RE.match(t) or _is_numeric(t):
            continue
        if any(label in t.lower() for label in FIXTURE_LABELS):
            continue
        teams.append(t)
        if len(teams) == 2:
            break
    return teams


def parse_fixtures(
    html: str,
    division: str,
    team_name_map: Optional[Dict[str, str]] = None,
) -> List[Fixture]:
    soup = _soup(html)
    fixtures: List[Fixture] = []

    for tr in soup.find_all("tr"):
        texts = _cell_texts(tr)
        if len(texts) < MIN_FIXTURE_CELLS:
            continue
        date_index = next((i for i, t in enumerate(texts) if DATE_RE.match(t)), None)
        if date_index is None:
            continue
        teams = _fixture_teams(texts[date_index + 1:])
        if len(teams) < 2:
            continue
        fixtures.append(
            Fixture(
                date=texts[date_index],
                home=_remap(teams[0], team_name_map),
                away=_remap(teams[1], team_name_map),
                division=division,
            )
        )
    return fixtures


# ---- cup competitions ----


def cup_match_id(date: str, home: str, away: str) -> str:
    """Cup results have no source id; derive a stable one from the pairing."""
    return re.sub(r"\s+", "_", f"cup-{date}-{home}-{away}")


def parse_cup_results(
    html: str,
    cup_code: str,
    team_name_map: Optional[Dict[str, str]] = None,
) -> List[Result]:
    """Rows of the form Date | Time | Home | "H - A" | Away."""
    soup = _soup(html)
    results: List[Result] = []

    for tr in soup.find_all("tr"):
        texts = _cell_texts(tr)
        if len(texts) < MIN_CUP_RESULT_CELLS:
            continue
        date, _, home, score, away = texts[:5]
        if not DATE_RE.match(date):
            continue
        m = CUP_SCORE_RE.match(score)
        if not m or not home or not away:
            continue
        home_score, away_score = int(m.group(1)), int(m.group(2))
        if home_score == 0 and away_score == 0:
            continue
        home = _remap(home, team_name_map)
        away = _remap(away, team_name_map)
        results.append(
            Result(
                date=date,
                home=home,
                away=away,
                home_score=home_score,
                away_score=away_score,
                division=cup_code,
                frames=home_score + away_score,
                match_id=cup_match_id(date, home, away),
                cup=True,
            )
        )
    return results


def parse_cup_fixtures(
    html: str,
    cup_code: str,
    team_name_map: Optional[Dict[str, str]] = None,
) -> List[Fixture]:
    """Rows of the form Date | Time | Home | Away."""
    soup = _soup(html)
    fixtures: List[Fixture] = []

    for tr in soup.find_all("tr"):
        texts = _cell_texts(tr)
        if len(texts) < MIN_FIXTURE_CELLS:
            continue
        date, _, home, away = texts[:4]
        if not DATE_RE.match(date) or not home or not away:
            continue
        if _is_numeric(home) or _is_numeric(away):
            continue
        fixtures.append(
            Fixture(
                date=date,
                home=_remap(home, team_name_map),
                away=_remap(away, team_name_map),
                division=cup_code,
                cup=True,
            )
        )
    return fixtures

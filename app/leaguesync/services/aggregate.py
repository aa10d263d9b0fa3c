"""Fold match frame detail into per-player stats and team rosters."""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..models.match import MatchFrames
from ..models.stats import PlayerStat, PlayerTeamStat
from .players import PlayerNormalizer


@dataclass
class Aggregation:
    players: Dict[str, PlayerStat] = field(default_factory=dict)
    rosters: Dict[str, List[str]] = field(default_factory=dict)

    def players_json(self) -> dict:
        return {name: stat.to_json() for name, stat in self.players.items()}


def roster_key(division: str, team: str) -> str:
    return f"{division}:{team}"


def _team_divisions(matches: Iterable[MatchFrames]) -> Dict[str, str]:
    # A team seen in more than one division (cup ties, playoffs) takes the
    # lowest code so the result does not depend on match order.
    divisions: Dict[str, str] = {}
    for match in matches:
        for team in (match.home, match.away):
            current = divisions.get(team)
            if current is None or match.division < current:
                divisions[team] = match.division
    return divisions


def _record(stat: PlayerTeamStat, won: bool, break_dish: bool, forfeit: bool) -> None:
    stat.p += 1
    if won:
        stat.w += 1
        if break_dish:
            stat.bd_f += 1
    elif break_dish:
        stat.bd_a += 1
    if forfeit:
        stat.forf += 1


def aggregate_player_stats(
    matches: List[MatchFrames],
    normalizer: Optional[PlayerNormalizer] = None,
) -> Aggregation:
    """
    Build player stats and rosters from the full frame history.

    Doubles pairings ("A & B") credit each player separately. Names are
    normalized with the team they played for, so a shared name on two teams
    can resolve to two different players. Output ordering is fixed: players
    by name, team entries by (team, division), roster names alphabetical.
    """
    normalizer = normalizer or PlayerNormalizer()
    team_divs = _team_divisions(matches)

    team_stats: Dict[str, Dict[str, PlayerTeamStat]] = defaultdict(dict)
    roster_sets: Dict[str, Set[str]] = {}

    for match in matches:
        home_key = roster_key(match.division, match.home)
        away_key = roster_key(match.division, match.away)
        roster_sets.setdefault(home_key, set())
        roster_sets.setdefault(away_key, set())

        for frame in match.frames:
            sides = (
                (frame.home_player, match.home, home_key, frame.winner == "home"),
                (frame.away_player, match.away, away_key, frame.winner == "away"),
            )
            for raw, team, key, won in sides:
                if not raw:
                    continue
                for name in normalizer.split(raw, team):
                    roster_sets[key].add(name)
                    stat = team_stats[name].get(team)
                    if stat is None:
                        stat = team_stats[name][team] = PlayerTeamStat(team=team, div=team_divs.get(team, ""))
                    _record(stat, won, frame.break_dish, frame.forfeit)

    players = {
        name: PlayerStat(teams=sorted(teams.values(), key=lambda t: (t.team, t.div)))
        for name, teams in sorted(team_stats.items())
    }
    rosters = {key: sorted(names) for key, names in sorted(roster_sets.items())}
    return Aggregation(players=players, rosters=rosters)

import logging
from typing import Iterable, List, Set

from ..models.match import Result

log = logging.getLogger("leaguesync.filtering")


class ResultsCollector:
    """
    Collects results for one league, unique by match id.

    Each match is listed on both teams' pages, so repeats are expected and
    ignored. A match involving a team outside the league is dropped and
    counted, but its id is still marked seen.
    """

    def __init__(self, known_teams: Iterable[str]):
        self.known_teams: Set[str] = set(known_teams)
        self.seen: Set[str] = set()
        self.results: List[Result] = []
        self.cross_league_filtered = 0

    def add(self, result: Result) -> bool:
        if result.match_id in self.seen:
            return False
        self.seen.add(result.match_id)

        if result.home not in self.known_teams or result.away not in self.known_teams:
            self.cross_league_filtered += 1
            log.debug(
                "Filtered cross-league match %s: %s vs %s",
                result.match_id,
                result.home,
                result.away,
            )
            return False

        self.results.append(result)
        return True

    def add_unfiltered(self, result: Result) -> bool:
        """Add without the known-team check; cup draws span every division."""
        if result.match_id in self.seen:
            return False
        self.seen.add(result.match_id)
        self.results.append(result)
        return True

    def extend(self, results: Iterable[Result]) -> int:
        return sum(1 for r in results if self.add(r))

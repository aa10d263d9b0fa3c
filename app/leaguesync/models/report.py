from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass
class LeagueReport:
    """Outcome of one league sync attempt."""

    league: str
    success: bool
    results: int = 0
    fixtures: int = 0
    frames: int = 0
    players: int = 0
    request_count: int = 0
    skipped_frames: int = 0
    cross_league_filtered: int = 0
    unresolved_dates: int = 0
    duration_ms: int = 0
    error: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    @staticmethod
    def failed(league: str, error: str, **counts) -> "LeagueReport":
        return LeagueReport(league=league, success=False, error=error, **counts)

    def to_json(self) -> dict:
        return asdict(self)


@dataclass
class RunReport:
    timestamp: str
    leagues: list[LeagueReport] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.leagues)

    def to_json(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "leagues": [r.to_json() for r in self.leagues],
            "all_succeeded": self.all_succeeded,
        }

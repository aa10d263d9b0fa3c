from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_UNKNOWN_DATE = "01-01-2026"


@dataclass(frozen=True)
class Division:
    code: str
    site_group: str

    @staticmethod
    def from_json(data: dict) -> "Division":
        return Division(code=str(data["code"]), site_group=str(data["site_group"]))

    @property
    def display_name(self) -> str:
        return (
            self.site_group.replace("Sunday", "Sun")
            .replace("Wednesday", "Wed")
            .replace("Division", "Div")
        )


@dataclass(frozen=True)
class LeagueConfig:
    """One league in the registry. Loaded once per run and never mutated."""

    key: str
    site: str
    league_id: str
    season_id: str
    league_name: str
    short_name: str
    data_dir: Path
    divisions: tuple[Division, ...] = ()
    cup_groups: tuple[Division, ...] = ()
    team_name_map: dict[str, str] = field(default_factory=dict)
    unknown_date: str = DEFAULT_UNKNOWN_DATE

    def map_team(self, site_name: str) -> str:
        return self.team_name_map.get(site_name, site_name)

    def site_team_name(self, team: str) -> str:
        """Inverse of map_team: the name the site uses in team page links."""
        for site_name, mapped in self.team_name_map.items():
            if mapped == team:
                return site_name
        return team

    @staticmethod
    def from_json(key: str, data: dict, *, root: Path, unknown_date: str = DEFAULT_UNKNOWN_DATE) -> "LeagueConfig":
        data_dir = Path(data.get("data_dir") or f"data-{key}")
        if not data_dir.is_absolute():
            data_dir = root / data_dir
        return LeagueConfig(
            key=key,
            site=str(data["site"]),
            league_id=str(data.get("league_id") or key),
            season_id=str(data["season_id"]),
            league_name=str(data.get("league_name") or key),
            short_name=str(data.get("short_name") or data.get("league_name") or key),
            data_dir=data_dir,
            divisions=tuple(Division.from_json(d) for d in data.get("divisions", [])),
            cup_groups=tuple(Division.from_json(d) for d in data.get("cup_groups", [])),
            team_name_map=dict(data.get("team_name_map") or {}),
            unknown_date=str(data.get("unknown_date") or unknown_date),
        )

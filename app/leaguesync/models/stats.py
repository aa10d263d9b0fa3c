from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal


def win_pct(won: int, played: int) -> float:
    """
    Win percentage to two decimal places; zero played frames reports 0.

    Rounds half up with exact Decimal arithmetic, so a ratio sitting on a
    half always rounds the same way instead of depending on float error.
    """
    if played <= 0:
        return 0.0
    scaled = (Decimal(won) * 10000 / Decimal(played)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(scaled / 100)


@dataclass
class PlayerTeamStat:
    team: str
    div: str
    p: int = 0
    w: int = 0
    lag: int = 0
    bd_f: int = 0
    bd_a: int = 0
    forf: int = 0

    @property
    def pct(self) -> float:
        return win_pct(self.w, self.p)

    def to_json(self) -> dict:
        return {
            "team": self.team,
            "div": self.div,
            "p": self.p,
            "w": self.w,
            "pct": self.pct,
            "lag": self.lag,
            "bd_f": self.bd_f,
            "bd_a": self.bd_a,
            "forf": self.forf,
        }

    @staticmethod
    def from_json(data: dict) -> "PlayerTeamStat":
        return PlayerTeamStat(
            team=data["team"],
            div=data.get("div", ""),
            p=int(data.get("p", 0)),
            w=int(data.get("w", 0)),
            lag=int(data.get("lag", 0)),
            bd_f=int(data.get("bd_f", 0)),
            bd_a=int(data.get("bd_a", 0)),
            forf=int(data.get("forf", 0)),
        )


@dataclass
class PlayerStat:
    teams: list[PlayerTeamStat] = field(default_factory=list)

    @property
    def played(self) -> int:
        return sum(t.p for t in self.teams)

    @property
    def won(self) -> int:
        return sum(t.w for t in self.teams)

    def total(self) -> dict:
        return {"p": self.played, "w": self.won, "pct": win_pct(self.won, self.played)}

    def to_json(self) -> dict:
        return {
            "teams": [t.to_json() for t in self.teams],
            "total": self.total(),
        }

    @staticmethod
    def from_json(data: dict) -> "PlayerStat":
        return PlayerStat(teams=[PlayerTeamStat.from_json(t) for t in data.get("teams", [])])

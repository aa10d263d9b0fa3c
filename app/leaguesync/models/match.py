from dataclasses import dataclass, field
from typing import Literal

Winner = Literal["home", "away"]

FRAMES_PER_SET = 5


def set_for_frame(frame_num: int) -> int:
    """Frames 1-5 belong to set 1, 6-10 to set 2, and so on."""
    return (max(frame_num, 1) - 1) // FRAMES_PER_SET + 1


@dataclass
class Result:
    """A completed match. match_id is unique within one sync run."""

    date: str
    home: str
    away: str
    home_score: int
    away_score: int
    division: str
    frames: int
    match_id: str
    cup: bool = False

    @property
    def pairing(self) -> str:
        return f"{self.home}:{self.away}"

    def to_json(self) -> dict:
        data = {
            "date": self.date,
            "home": self.home,
            "away": self.away,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "division": self.division,
            "frames": self.frames,
            "match_id": self.match_id,
        }
        if self.cup:
            data["cup"] = True
        return data

    @staticmethod
    def from_json(data: dict) -> "Result":
        return Result(
            date=data.get("date", ""),
            home=data["home"],
            away=data["away"],
            home_score=int(data.get("home_score", 0)),
            away_score=int(data.get("away_score", 0)),
            division=data.get("division", ""),
            frames=int(data.get("frames", 0)),
            match_id=str(data.get("match_id", "")),
            cup=bool(data.get("cup", False)),
        )


@dataclass
class Fixture:
    date: str
    home: str
    away: str
    division: str
    cup: bool = False

    def to_json(self) -> dict:
        data = {
            "date": self.date,
            "home": self.home,
            "away": self.away,
            "division": self.division,
        }
        if self.cup:
            data["cup"] = True
        return data

    @staticmethod
    def from_json(data: dict) -> "Fixture":
        return Fixture(
            date=data.get("date", ""),
            home=data["home"],
            away=data["away"],
            division=data.get("division", ""),
            cup=bool(data.get("cup", False)),
        )


@dataclass
class Frame:
    frame_num: int
    set: int
    home_player: str
    away_player: str
    winner: Winner
    break_dish: bool = False
    forfeit: bool = False

    def to_json(self) -> dict:
        return {
            "frame_num": self.frame_num,
            "set": self.set,
            "home_player": self.home_player,
            "away_player": self.away_player,
            "winner": self.winner,
            "break_dish": self.break_dish,
            "forfeit": self.forfeit,
        }

    @staticmethod
    def from_json(data: dict) -> "Frame":
        frame_num = int(data["frame_num"])
        return Frame(
            frame_num=frame_num,
            set=int(data.get("set") or set_for_frame(frame_num)),
            home_player=data.get("home_player", ""),
            away_player=data.get("away_player", ""),
            winner="home" if data.get("winner") == "home" else "away",
            break_dish=bool(data.get("break_dish", False)),
            forfeit=bool(data.get("forfeit", False)),
        )


@dataclass
class MatchFrames:
    match_id: str
    date: str
    home: str
    away: str
    division: str
    frames: list[Frame] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "match_id": self.match_id,
            "date": self.date,
            "home": self.home,
            "away": self.away,
            "division": self.division,
            "frames": [f.to_json() for f in self.frames],
        }

    @staticmethod
    def from_json(data: dict) -> "MatchFrames":
        return MatchFrames(
            match_id=str(data["match_id"]),
            date=data.get("date", ""),
            home=data["home"],
            away=data["away"],
            division=data.get("division", ""),
            frames=[Frame.from_json(f) for f in data.get("frames", [])],
        )

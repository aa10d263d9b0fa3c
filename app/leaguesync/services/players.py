"""Canonical player names: entity decoding, aliases and team-scoped disambiguation."""
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

log = logging.getLogger("leaguesync.players")

CORRECTIONS_FILE = "player-corrections.json"
PLACEHOLDER_NAME = "Unknown"

ENTITIES = (
    ("&#x27;", "'"),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&quot;", '"'),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&nbsp;", " "),
    ("&amp;", "&"),
)

WHITESPACE_RE = re.compile(r"\s+")
# "&amp;" separates a pair; any other "&" that opens an entity such as "&#x27;"
# is part of the name.
DOUBLES_SEPARATOR_RE = re.compile(r"\s*(?:&amp;|&(?!#?\w+;))\s*")


@dataclass
class Corrections:
    aliases: Dict[str, str] = field(default_factory=dict)
    disambiguations: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def from_json(data: dict) -> "Corrections":
        return Corrections(
            aliases=dict(data.get("aliases") or {}),
            disambiguations=dict(data.get("disambiguations") or {}),
        )


def decode_html_entities(text: str) -> str:
    # &amp; last so "&amp;lt;" decodes to "&lt;" and not "<".
    for entity, char in ENTITIES:
        text = text.replace(entity, char)
    return text


def normalize_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def split_player_field(value: str) -> List[str]:
    """Split a doubles pairing "A & B" into raw names, dropping placeholders."""
    parts = DOUBLES_SEPARATOR_RE.split(value or "")
    return [p.strip() for p in parts if p.strip() and p.strip() != PLACEHOLDER_NAME]


def corrections_loader(directory) -> Callable[[], Corrections]:
    """Loader reading player-corrections.json from `directory`."""
    path = Path(directory) / CORRECTIONS_FILE

    def load() -> Corrections:
        if not path.exists():
            return Corrections()
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Corrections.from_json(json.load(f))
        except (OSError, ValueError, AttributeError) as exc:
            log.warning("Could not load %s: %s", path, exc)
            return Corrections()

    return load


class PlayerNormalizer:
    """
    Maps scraped player names to canonical names.

    Steps run in a fixed order: decode entities, collapse whitespace, apply
    aliases, then apply the `name|team` disambiguation when a team is given.
    The corrections table is loaded on first use and cached until
    `clear_cache()`.
    """

    def __init__(self, loader: Optional[Callable[[], Corrections]] = None):
        self._loader = loader or Corrections
        self._corrections: Optional[Corrections] = None

    @property
    def corrections(self) -> Corrections:
        if self._corrections is None:
            self._corrections = self._loader()
        return self._corrections

    def clear_cache(self) -> None:
        self._corrections = None

    def normalize(self, raw_name: str, team: Optional[str] = None) -> str:
        if not raw_name or raw_name == PLACEHOLDER_NAME:
            return raw_name

        name = normalize_whitespace(decode_html_entities(raw_name))
        corrections = self.corrections
        name = corrections.aliases.get(name, name)
        if team:
            name = corrections.disambiguations.get(f"{name}|{team}", name)
        return name

    def split(self, value: str, team: Optional[str] = None) -> List[str]:
        return [self.normalize(name, team) for name in split_player_field(value)]

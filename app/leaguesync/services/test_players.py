import json

from leaguesync.services.players import (
    Corrections,
    PlayerNormalizer,
    corrections_loader,
    decode_html_entities,
    normalize_whitespace,
    split_player_field,
)

CORRECTIONS = Corrections(
    aliases={"Bob Smith": "Robert Smith", "O'Neill J": "Jim O'Neill"},
    disambiguations={"Robert Smith|Rovers": "Robert Smith (Rovers)"},
)


def _normalizer(corrections=CORRECTIONS):
    return PlayerNormalizer(loader=lambda: corrections)


def test_decode_entities_and_whitespace():
    assert decode_html_entities("O&#x27;Neill &amp; Co&nbsp;") == "O'Neill & Co "
    assert decode_html_entities("&quot;Tiny&quot; &lt;3&gt;") == '"Tiny" <3>'
    assert normalize_whitespace("  Bob \t  Smith \n") == "Bob Smith"


def test_whitespace_variants_normalize_identically():
    normalizer = _normalizer()
    assert normalizer.normalize("  Bob   Smith ") == normalizer.normalize("Bob Smith") == "Robert Smith"


def test_alias_applied_after_entity_decoding():
    assert _normalizer().normalize("O&#39;Neill J") == "Jim O'Neill"


def test_disambiguation_depends_on_team():
    normalizer = _normalizer()

    with_team = normalizer.normalize("Bob Smith", "Rovers")
    without_team = normalizer.normalize("Bob Smith")

    assert with_team == "Robert Smith (Rovers)"
    assert with_team != without_team
    assert normalizer.normalize("Bob Smith", "Turf") == "Robert Smith"


def test_normalize_is_idempotent():
    normalizer = _normalizer()
    once = normalizer.normalize("  Bob  Smith", "Rovers")
    assert normalizer.normalize(once, "Rovers") == once


def test_placeholder_and_empty_names_pass_through():
    normalizer = _normalizer()
    assert normalizer.normalize("") == ""
    assert normalizer.normalize("Unknown") == "Unknown"


def test_doubles_split_attributes_both_players_to_team():
    corrections = Corrections(
        disambiguations={
            "James Collier|Rovers": "James Collier (Rovers)",
            "Shaun Jones|Rovers": "Shaun Jones (Rovers)",
        }
    )
    normalizer = _normalizer(corrections)

    names = normalizer.split("James Collier & Shaun Jones", "Rovers")

    assert names == ["James Collier (Rovers)", "Shaun Jones (Rovers)"]


def test_split_keeps_entity_encoded_names_whole():
    assert split_player_field("O&#x27;Neill J") == ["O&#x27;Neill J"]
    assert split_player_field("O&#39;Neill J & Al Jones") == ["O&#39;Neill J", "Al Jones"]
    assert split_player_field("Bob Smith &amp; Al Jones") == ["Bob Smith", "Al Jones"]

    assert _normalizer().split("O&#x27;Neill J & Bob Smith", "Rovers") == ["Jim O'Neill", "Robert Smith (Rovers)"]


def test_split_drops_placeholders():
    assert split_player_field("Al Jones &  Unknown") == ["Al Jones"]
    assert split_player_field("Unknown") == []
    assert split_player_field("") == []


def test_corrections_loaded_once_until_cleared():
    calls = []

    def loader():
        calls.append(1)
        return CORRECTIONS

    normalizer = PlayerNormalizer(loader=loader)
    normalizer.normalize("Bob Smith")
    normalizer.normalize("Al Jones")
    assert len(calls) == 1

    normalizer.clear_cache()
    normalizer.normalize("Bob Smith")
    assert len(calls) == 2


def test_corrections_loader_reads_file(tmp_path):
    (tmp_path / "player-corrections.json").write_text(
        json.dumps({"aliases": {"Bob Smith": "Robert Smith"}, "disambiguations": {}}),
        encoding="utf-8",
    )

    normalizer = PlayerNormalizer(loader=corrections_loader(tmp_path))

    assert normalizer.normalize("Bob Smith") == "Robert Smith"


def test_corrections_loader_tolerates_missing_and_invalid_files(tmp_path):
    assert corrections_loader(tmp_path)() == Corrections()

    (tmp_path / "player-corrections.json").write_text("{not json", encoding="utf-8")
    assert corrections_loader(tmp_path)() == Corrections()

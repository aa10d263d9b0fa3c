import itertools
import json

from leaguesync.models.match import Frame, MatchFrames
from leaguesync.models.stats import PlayerStat, win_pct
from leaguesync.services.aggregate import aggregate_player_stats
from leaguesync.services.players import Corrections, PlayerNormalizer


def _normalizer(**tables):
    corrections = Corrections(**tables)
    return PlayerNormalizer(loader=lambda: corrections)


MATCHES = [
    MatchFrames(
        "1",
        "07-09-2025",
        "Rovers",
        "Turf",
        "SD1",
        [
            Frame(1, 1, "Bob Smith", "Al Jones", "home", break_dish=True),
            Frame(2, 1, "Dave Lee", "Al Jones", "away", break_dish=True),
            Frame(3, 1, "Bob Smith", "Tom Hart", "away", forfeit=True),
            Frame(4, 1, "James Collier & Shaun Jones", "Al Jones & Tom Hart", "home"),
        ],
    ),
    MatchFrames(
        "2",
        "14-09-2025",
        "Turf",
        "Magnet",
        "SD1",
        [
            Frame(1, 1, "Al Jones", "Bob Smith", "home"),
            Frame(2, 1, "Tom Hart", "Ian Rees", "away"),
        ],
    ),
]


def test_counters_per_player_and_team():
    agg = aggregate_player_stats(MATCHES, _normalizer())

    bob_magnet, bob_rovers = agg.players["Bob Smith"].teams
    assert (bob_rovers.team, bob_rovers.p, bob_rovers.w, bob_rovers.bd_f, bob_rovers.forf) == ("Rovers", 2, 1, 1, 1)
    assert (bob_magnet.team, bob_magnet.p, bob_magnet.w) == ("Magnet", 1, 0)

    al = agg.players["Al Jones"].teams[0]
    assert (al.p, al.w, al.bd_a, al.bd_f) == (4, 2, 1, 1)
    assert agg.players["Al Jones"].total() == {"p": 4, "w": 2, "pct": 50.0}


def test_doubles_credit_each_player_with_team_context():
    normalizer = _normalizer(disambiguations={"Shaun Jones|Rovers": "Shaun Jones (Rovers)"})

    agg = aggregate_player_stats(MATCHES, normalizer)

    assert "Shaun Jones (Rovers)" in agg.players
    assert agg.players["James Collier"].teams[0].team == "Rovers"
    assert agg.players["James Collier"].teams[0].w == 1
    assert "Shaun Jones (Rovers)" in agg.rosters["SD1:Rovers"]


def test_entity_encoded_name_counted_as_one_player():
    match = MatchFrames(
        "3",
        "21-09-2025",
        "Rovers",
        "Turf",
        "SD1",
        [Frame(1, 1, "O&#x27;Neill J", "Al Jones", "home")],
    )

    agg = aggregate_player_stats([match], _normalizer(aliases={"O'Neill J": "Jim O'Neill"}))

    assert sorted(agg.players) == ["Al Jones", "Jim O'Neill"]
    assert agg.players["Jim O'Neill"].teams[0].w == 1
    assert agg.rosters["SD1:Rovers"] == ["Jim O'Neill"]


def test_rosters_sorted_and_keyed_by_division_and_team():
    agg = aggregate_player_stats(MATCHES, _normalizer())

    assert agg.rosters["SD1:Rovers"] == ["Bob Smith", "Dave Lee", "James Collier", "Shaun Jones"]
    assert agg.rosters["SD1:Magnet"] == ["Bob Smith", "Ian Rees"]
    assert list(agg.rosters) == sorted(agg.rosters)


def test_aggregation_is_order_independent():
    expected = json.dumps(aggregate_player_stats(MATCHES, _normalizer()).players_json())
    reversed_frames = [
        MatchFrames(m.match_id, m.date, m.home, m.away, m.division, list(reversed(m.frames)))
        for m in MATCHES
    ]

    for perm in itertools.permutations(reversed_frames):
        agg = aggregate_player_stats(list(perm), _normalizer())
        assert json.dumps(agg.players_json()) == expected


def test_team_division_is_stable_across_divisions():
    cup_tie = MatchFrames("3", "", "Rovers", "Turf", "KO", [Frame(1, 1, "Bob Smith", "Al Jones", "home")])

    a = aggregate_player_stats(MATCHES + [cup_tie], _normalizer())
    b = aggregate_player_stats([cup_tie] + MATCHES, _normalizer())

    assert a.players_json() == b.players_json()
    assert a.players["Al Jones"].teams[0].div == "KO"


def test_win_pct_rounding_and_zero_played():
    assert win_pct(0, 0) == 0
    assert win_pct(1, 3) == 33.33
    assert win_pct(2, 3) == 66.67
    assert win_pct(1, 8) == 12.5
    assert win_pct(1, 20000) == 0.01


def test_player_stats_round_trip_through_backup_format():
    agg = aggregate_player_stats(MATCHES, _normalizer())

    reloaded = json.loads(json.dumps(agg.players_json()))

    for name, data in reloaded.items():
        stat = PlayerStat.from_json(data)
        assert stat.total() == agg.players[name].total()
        assert stat.to_json() == data

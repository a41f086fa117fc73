import pytest

from dartscore.backend.darts import MISS, Hit
from dartscore.backend.engine import apply_confirmed_turn
from dartscore.backend.errors import InvalidMatchConfigError, MatchStateError
from dartscore.backend.models import (
    ClockConfig,
    CricketConfig,
    CricketPlayerState,
    ShanghaiConfig,
    ShanghaiPlayerState,
    Variant,
)
from dartscore.backend.rules import CRICKET_TARGETS
from dartscore.backend.state import (
    build_config,
    build_initial_state,
    parse_variant,
    state_from_dict,
    state_to_dict,
)


PLAYERS = [{"id": "a", "name": "Anna"}, {"id": "b", "name": "Ben"}]


def test_build_initial_state_zeroes_every_player() -> None:
    state = build_initial_state("m-1", "cricket", PLAYERS)

    assert state.variant is Variant.CRICKET
    assert state.status == "running"
    assert state.turn_index == 0
    assert state.round_index == 0
    assert state.turns == ()
    assert state.current_player.id == "a"
    assert isinstance(state.config, CricketConfig)
    assert state.players["b"] == CricketPlayerState(marks={number: 0 for number in CRICKET_TARGETS}, points=0)


def test_build_initial_state_assigns_missing_ids_by_position() -> None:
    state = build_initial_state("m-2", "shanghai", [{"name": "Anna"}, {"name": " Ben "}])

    assert [(player.id, player.name, player.order) for player in state.roster] == [
        ("p1", "Anna", 0),
        ("p2", "Ben", 1),
    ]
    assert state.players["p2"] == ShanghaiPlayerState()
    assert state.config == ShanghaiConfig(start_number=1, round_count=7)


@pytest.mark.parametrize(
    ("variant", "count"),
    [("cricket", 1), ("shanghai", 1), ("around-the-clock", 0), ("cricket", 5), ("around-the-clock", 5)],
)
def test_build_initial_state_enforces_roster_size(variant: str, count: int) -> None:
    players = [{"name": f"Player {index}"} for index in range(count)]

    with pytest.raises(InvalidMatchConfigError):
        build_initial_state("m-3", variant, players)


def test_solo_clock_match_is_allowed() -> None:
    state = build_initial_state("m-4", "around-the-clock", [{"name": "Solo"}])

    assert len(state.roster) == 1
    assert state.config == ClockConfig()


def test_build_initial_state_rejects_bad_rosters_and_configs() -> None:
    with pytest.raises(InvalidMatchConfigError):
        build_initial_state("m-5", "cricket", [{"id": "a", "name": "Anna"}, {"id": "a", "name": "Ben"}])
    with pytest.raises(InvalidMatchConfigError):
        build_initial_state("m-5", "cricket", [{"name": "Anna"}, {"name": "  "}])
    with pytest.raises(InvalidMatchConfigError):
        build_initial_state("m-5", "killer", PLAYERS)
    with pytest.raises(InvalidMatchConfigError):
        build_initial_state("m-5", "cricket", PLAYERS, ClockConfig())


def test_build_config_reads_camel_case_settings() -> None:
    assert build_config(Variant.SHANGHAI, {"startNumber": 10, "roundCount": 5}) == ShanghaiConfig(10, 5)
    assert build_config(Variant.SHANGHAI, {"startNumber": 15, "roundCount": 7}).targets == (15, 16, 17, 18, 19, 20)
    assert build_config(Variant.CLOCK, {"includeBull": False, "includeTriples": True}) == ClockConfig(
        include_bull=False, include_doubles=False, include_triples=True
    )
    assert parse_variant("around-the-clock") is Variant.CLOCK


def test_state_dict_round_trip_keeps_turn_log() -> None:
    state = build_initial_state("m-6", "shanghai", PLAYERS, ShanghaiConfig(start_number=3, round_count=2))
    state = apply_confirmed_turn(state, [Hit(3, 3), MISS]).state
    state = apply_confirmed_turn(state, [Hit(3, 1)]).state

    payload = state_to_dict(state)

    assert payload["round"] == 1
    assert payload["currentPlayerId"] == "a"
    assert payload["config"]["targets"] == [3, 4]
    assert payload["players"]["a"] == {"totalScore": 9, "roundScores": {"0": 9}, "shanghaiRound": None}
    assert payload["turns"][0]["darts"][0] == {"segment": 3, "multiplier": 3, "score": 9}
    assert state_from_dict(payload) == state


def test_finished_state_has_no_current_player() -> None:
    state = build_initial_state("m-7", "shanghai", PLAYERS)
    finished = apply_confirmed_turn(state, [Hit(1, 1), Hit(1, 2), Hit(1, 3)]).state

    payload = state_to_dict(finished)

    assert payload["status"] == "finished"
    assert payload["currentPlayerId"] is None
    assert payload["verdict"] == {"kind": "shanghai_instant_win", "playerId": "a", "tiedWith": []}
    assert state_from_dict(payload) == finished


def test_corrupt_snapshot_raises_match_state_error() -> None:
    payload = state_to_dict(build_initial_state("m-8", "cricket", PLAYERS))
    del payload["players"]

    with pytest.raises(MatchStateError):
        state_from_dict(payload)
    with pytest.raises(MatchStateError):
        state_from_dict({**state_to_dict(build_initial_state("m-8", "cricket", PLAYERS)), "variant": "killer"})

from dataclasses import replace

import pytest

from dartscore.backend import clock
from dartscore.backend.darts import MISS, Hit
from dartscore.backend.engine import TurnOrchestrator
from dartscore.backend.errors import MatchFinishedError, MatchStateError
from dartscore.backend.models import ClockConfig, ClockPlayerState, MatchPlayer, VerdictKind
from dartscore.backend.state import build_initial_state


ROSTER = (MatchPlayer(id="a", name="Anna", order=0), MatchPlayer(id="b", name="Ben", order=1))


@pytest.mark.parametrize(
    ("include_doubles", "include_triples", "dart", "target", "expected"),
    [
        (False, False, Hit(7, 1), 7, True),
        (False, False, Hit(7, 2), 7, False),
        (False, False, Hit(7, 3), 7, False),
        (False, False, Hit(25, 1), 25, True),
        (False, False, Hit(25, 2), 25, True),
        (True, False, Hit(7, 2), 7, True),
        (True, False, Hit(7, 3), 7, False),
        (False, True, Hit(7, 3), 7, True),
        (False, True, Hit(7, 2), 7, False),
        (False, True, Hit(25, 2), 25, False),
        (True, True, Hit(7, 3), 7, True),
        (True, True, Hit(7, 2), 7, True),
        (True, True, Hit(8, 1), 7, False),
        (True, True, MISS, 7, False),
    ],
)
def test_hit_rule_table(include_doubles: bool, include_triples: bool, dart, target: int, expected: bool) -> None:
    config = ClockConfig(include_bull=True, include_doubles=include_doubles, include_triples=include_triples)

    assert clock.is_hit(dart, target, config) is expected


def test_singles_only_with_bull() -> None:
    config = ClockConfig(include_bull=True)
    states = clock.initial_states(ROSTER)

    double_result = clock.apply_turn(states, "a", config, [Hit(1, 2)])
    single_result = clock.apply_turn(states, "a", config, [Hit(1, 1)])
    at_bull = {"a": ClockPlayerState(progress_index=20, darts_used=40), "b": ClockPlayerState()}
    bull_result = clock.apply_turn(at_bull, "a", config, [Hit(25, 2)])

    assert config.targets[-1] == 25
    assert double_result["a"].progress_index == 0
    assert single_result["a"].progress_index == 1
    assert bull_result["a"].progress_index == 21
    assert clock.has_won(bull_result, "a", config) is True


def test_target_moves_within_a_turn() -> None:
    config = ClockConfig()
    states = clock.initial_states(ROSTER)

    result = clock.apply_turn(states, "a", config, [Hit(2, 1), Hit(1, 1), Hit(2, 1)])

    assert result["a"] == ClockPlayerState(progress_index=2, darts_used=3)
    assert clock.current_target(result["a"], config) == 3


def test_every_dart_counts_towards_darts_used() -> None:
    result = clock.apply_turn(clock.initial_states(ROSTER), "a", ClockConfig(), [MISS, Hit(5, 1)])

    assert result["a"] == ClockPlayerState(progress_index=0, darts_used=2)


def test_darts_after_the_last_target_are_not_counted() -> None:
    config = ClockConfig(include_bull=False)
    states = {"a": ClockPlayerState(progress_index=19, darts_used=30), "b": ClockPlayerState()}

    result = clock.apply_turn(states, "a", config, [Hit(20, 1), Hit(20, 1), MISS])

    assert result["a"] == ClockPlayerState(progress_index=20, darts_used=31)
    assert clock.current_target(result["a"], config) is None


def test_first_finisher_ends_match_without_compensating_turn() -> None:
    config = ClockConfig(include_bull=False)
    state = build_initial_state("m-clock", "around-the-clock", ROSTER, config)
    state = replace(state, players={"a": ClockPlayerState(progress_index=19, darts_used=19), "b": ClockPlayerState()})
    orchestrator = TurnOrchestrator(state)

    outcome = orchestrator.confirm_turn([Hit(20, 1)])

    assert outcome.verdict.kind is VerdictKind.WINNER
    assert outcome.verdict.player_id == "a"
    assert outcome.state.is_finished is True
    assert outcome.state.players["b"] == ClockPlayerState()
    assert [turn.player_id for turn in outcome.state.turns] == ["a"]
    with pytest.raises(MatchFinishedError):
        orchestrator.confirm_turn([Hit(1, 1)])


def test_progress_out_of_range_is_fatal() -> None:
    config = ClockConfig(include_bull=False)
    states = {"a": ClockPlayerState(progress_index=25, darts_used=0), "b": ClockPlayerState()}

    with pytest.raises(MatchStateError):
        clock.apply_turn(states, "a", config, [Hit(1, 1)])

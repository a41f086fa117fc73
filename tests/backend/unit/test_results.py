from dartscore.backend.darts import MISS, Hit
from dartscore.backend.engine import TurnOrchestrator, replay
from dartscore.backend.models import ClockConfig
from dartscore.backend.results import build_match_result
from dartscore.backend.state import build_initial_state


def test_clock_result_counts_darts_and_hit_rate() -> None:
    state = build_initial_state("m-clock", "around-the-clock", [{"name": "Solo"}], ClockConfig(include_bull=False))
    orchestrator = TurnOrchestrator(state)
    targets = list(range(1, 21))
    for start in range(0, 20, 3):
        orchestrator.confirm_turn([Hit(number, 1) for number in targets[start : start + 3]])

    result = orchestrator.result()

    assert result is not None
    assert result.winner_id == "p1"
    assert result.verdict_kind == "winner"
    summary = result.players[0]
    assert summary.darts_thrown == 20
    assert summary.turns == 7
    assert summary.stat_name == "hitRate"
    assert summary.stat_value == 1.0
    assert summary.final_state == {"progressIndex": 20, "dartsUsed": 20}


def test_cricket_marks_per_round_counts_closing_marks_only() -> None:
    state = build_initial_state("m-cricket", "cricket", [{"id": "a", "name": "Anna"}, {"id": "b", "name": "Ben"}])
    state = replay(state, [[Hit(20, 3), Hit(20, 3)], [MISS], [Hit(19, 3), Hit(18, 1)]])

    result = build_match_result(state).to_dict()

    anna, ben = result["players"]
    assert result["winnerId"] is None
    assert result["verdict"] == "continue"
    assert anna["dartsThrown"] == 4
    assert anna["turns"] == 2
    assert anna["marksPerRound"] == 3.5
    assert anna["finalState"]["points"] == 60
    assert ben["dartsThrown"] == 1
    assert ben["marksPerRound"] == 0.0


def test_shanghai_points_per_round_and_tied_with() -> None:
    state = build_initial_state("m-shanghai", "shanghai", [{"id": "a", "name": "Anna"}, {"id": "b", "name": "Ben"}])
    state = replay(state, [[Hit(1, 1), Hit(1, 2), Hit(1, 3)]])

    result = build_match_result(state).to_dict()

    assert result["verdict"] == "shanghai_instant_win"
    assert result["winnerId"] == "a"
    assert result["tiedWith"] == []
    assert result["players"][0]["pointsPerRound"] == 6.0
    assert result["players"][1]["turns"] == 0
    assert result["players"][1]["pointsPerRound"] == 0.0

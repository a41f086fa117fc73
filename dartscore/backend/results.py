"""Terminal match result handed to persistence and statistics collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import MatchStateError
from .models import ClockPlayerState, CricketPlayerState, ShanghaiPlayerState
from .rules import CRICKET_TARGETS, MARKS_TO_CLOSE
from .state import MatchState, state_to_dict


@dataclass(frozen=True)
class PlayerSummary:
    player_id: str
    name: str
    order: int
    darts_thrown: int
    turns: int
    stat_name: str
    stat_value: float
    final_state: dict[str, Any]


@dataclass(frozen=True)
class MatchResult:
    match_id: str
    variant: str
    winner_id: str | None
    verdict_kind: str
    tied_with: tuple[str, ...]
    players: tuple[PlayerSummary, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchId": self.match_id,
            "variant": self.variant,
            "winnerId": self.winner_id,
            "verdict": self.verdict_kind,
            "tiedWith": list(self.tied_with),
            "players": [
                {
                    "playerId": summary.player_id,
                    "name": summary.name,
                    "order": summary.order,
                    "dartsThrown": summary.darts_thrown,
                    "turns": summary.turns,
                    summary.stat_name: summary.stat_value,
                    "finalState": summary.final_state,
                }
                for summary in self.players
            ],
        }


def _cricket_marks(player_state: CricketPlayerState) -> int:
    return sum(min(player_state.marks_on(number), MARKS_TO_CLOSE) for number in CRICKET_TARGETS)


def _variant_stat(player_state: Any, turns: int) -> tuple[str, float]:
    # marks per round counts closing marks only; overflow is reflected in points
    if isinstance(player_state, CricketPlayerState):
        return "marksPerRound", round(_cricket_marks(player_state) / turns, 2) if turns else 0.0
    if isinstance(player_state, ShanghaiPlayerState):
        return "pointsPerRound", round(player_state.total_score / turns, 2) if turns else 0.0
    if not isinstance(player_state, ClockPlayerState):
        raise MatchStateError(f"no statistic for {type(player_state).__name__}")
    if not player_state.darts_used:
        return "hitRate", 0.0
    return "hitRate", round(player_state.progress_index / player_state.darts_used, 3)


def build_match_result(state: MatchState) -> MatchResult:
    """Summarize a match; callers persist this, the engine never does."""
    serialized = state_to_dict(state)
    summaries = []
    for player in sorted(state.roster, key=lambda entry: entry.order):
        player_turns = [turn for turn in state.turns if turn.player_id == player.id]
        player_state = state.players[player.id]
        if isinstance(player_state, ClockPlayerState):
            darts_thrown = player_state.darts_used
        else:
            darts_thrown = sum(len(turn.darts) for turn in player_turns)
        stat_name, stat_value = _variant_stat(player_state, len(player_turns))
        summaries.append(
            PlayerSummary(
                player_id=player.id,
                name=player.name,
                order=player.order,
                darts_thrown=darts_thrown,
                turns=len(player_turns),
                stat_name=stat_name,
                stat_value=stat_value,
                final_state=serialized["players"][player.id],
            )
        )
    return MatchResult(
        match_id=state.match_id,
        variant=state.variant.value,
        winner_id=state.verdict.player_id,
        verdict_kind=state.verdict.kind.value,
        tied_with=state.verdict.tied_with,
        players=tuple(summaries),
    )

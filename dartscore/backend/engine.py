"""Turn orchestration: engine dispatch, win evaluation, rotation and undo."""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Any, Iterable, Sequence

from . import clock, cricket, shanghai
from .darts import Dart, Turn, dart_from_dict, validate_darts
from .errors import DartScoreError, MatchFinishedError, MatchStateError, NothingToUndoError
from .models import (
    ClockConfig,
    ClockPlayerState,
    ConfirmedTurn,
    CricketConfig,
    CricketPlayerState,
    MatchConfig,
    MatchPlayer,
    PlayerState,
    ShanghaiConfig,
    ShanghaiPlayerState,
    Variant,
    Verdict,
)
from .results import MatchResult, build_match_result
from .state import STATUS_FINISHED, MatchState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnOutcome:
    state: MatchState
    verdict: Verdict
    engine_events: list[dict[str, Any]]


@dataclass(frozen=True)
class ActionResult:
    state: MatchState
    engine_events: list[dict[str, Any]]


_VARIANT_TYPES: dict[Variant, tuple[type, type]] = {
    Variant.CRICKET: (CricketConfig, CricketPlayerState),
    Variant.SHANGHAI: (ShanghaiConfig, ShanghaiPlayerState),
    Variant.CLOCK: (ClockConfig, ClockPlayerState),
}


def _variant_config(state: MatchState) -> MatchConfig:
    config_type, player_type = _VARIANT_TYPES[state.variant]
    if not isinstance(state.config, config_type):
        raise MatchStateError(f"{state.variant.value} match carries {type(state.config).__name__}")
    for player_id, player_state in state.players.items():
        if not isinstance(player_state, player_type):
            raise MatchStateError(f"{state.variant.value} match holds {type(player_state).__name__} for {player_id!r}")
    return state.config


def _apply_variant(state: MatchState, player_id: str, darts: Sequence[Dart]) -> dict[str, PlayerState]:
    config = _variant_config(state)
    if isinstance(config, CricketConfig):
        return cricket.apply_turn(state.players, player_id, darts)
    if isinstance(config, ShanghaiConfig):
        return shanghai.apply_turn(state.players, player_id, state.round_index, config, darts)
    return clock.apply_turn(state.players, player_id, config, darts)


def evaluate_turn(state: MatchState, player_id: str) -> Verdict:
    """Run the variant's win evaluator on a post-turn state.

    Pure in ``state``; replaying the same state yields the same verdict.
    """
    config = _variant_config(state)
    if isinstance(config, CricketConfig):
        if cricket.has_won(state.players, state.roster, player_id):
            return Verdict.winner(player_id)
        return Verdict.proceed()
    if isinstance(config, ShanghaiConfig):
        return shanghai.evaluate(state.players, state.roster, player_id, state.round_index, config)
    if clock.has_won(state.players, player_id, config):
        return Verdict.winner(player_id)
    return Verdict.proceed()


def apply_confirmed_turn(state: MatchState, darts: Iterable[Dart]) -> TurnOutcome:
    """Apply one confirmed turn for the player whose turn it is.

    Either the whole turn applies or an error is raised before anything
    changes. On a win the match is finished in place of rotating.
    """
    if state.is_finished:
        raise MatchFinishedError(f"match {state.match_id} is already finished")
    if not 0 <= state.turn_index < len(state.roster):
        raise MatchStateError(f"turn index {state.turn_index} outside roster of {len(state.roster)}")

    checked = validate_darts(darts)
    player = state.current_player
    players = _apply_variant(state, player.id, checked)
    turns = (*state.turns, ConfirmedTurn(player_id=player.id, round_index=state.round_index, darts=checked))
    applied = replace(state, players=players, turns=turns)
    verdict = evaluate_turn(applied, player.id)

    events: list[dict[str, Any]] = [
        {
            "kind": "turn_confirmed",
            "playerId": player.id,
            "round": state.round_index,
            "darts": [{"segment": dart.segment, "multiplier": dart.multiplier} for dart in checked],
        }
    ]

    if verdict.is_terminal:
        finished = replace(applied, status=STATUS_FINISHED, verdict=verdict)
        events.append(
            {
                "kind": "match_finished",
                "verdict": verdict.kind.value,
                "winnerId": verdict.player_id,
                "tiedWith": list(verdict.tied_with),
            }
        )
        logger.debug("match %s finished: %s %s", state.match_id, verdict.kind.value, verdict.player_id)
        return TurnOutcome(state=finished, verdict=verdict, engine_events=events)

    next_index = (state.turn_index + 1) % len(state.roster)
    round_index = state.round_index
    if next_index == 0 and state.variant is Variant.SHANGHAI:
        events.append({"kind": "round_end", "round": round_index})
        round_index += 1
        events.append({"kind": "round_start", "round": round_index})
    events.append({"kind": "turn_start", "playerId": state.roster[next_index].id})

    advanced = replace(applied, turn_index=next_index, round_index=round_index, verdict=verdict)
    return TurnOutcome(state=advanced, verdict=verdict, engine_events=events)


def replay(initial: MatchState, turns: Iterable[Sequence[Dart]]) -> MatchState:
    state = initial
    for darts in turns:
        state = apply_confirmed_turn(state, darts).state
    return state


def undo_last_turn(state: MatchState) -> MatchState:
    """Rebuild the match from scratch without its last confirmed turn."""
    if not state.turns:
        raise NothingToUndoError(f"match {state.match_id} has no confirmed turns")
    return replay(state.reset(), [turn.darts for turn in state.turns[:-1]])


def apply_match_action(state: MatchState, action: dict[str, Any]) -> ActionResult:
    """Apply a scorer action according to its ``type``.

    Domain errors raised by the engine propagate to the caller unchanged.
    """
    action_type = str(action.get("type", "")).upper()
    if action_type == "CONFIRM_TURN":
        return _apply_confirm_turn(state=state, action=action)
    if action_type == "UNDO_TURN":
        return _apply_undo_turn(state=state, action=action)
    return ActionResult(state=state, engine_events=[])


def _apply_confirm_turn(state: MatchState, action: dict[str, Any]) -> ActionResult:
    raw_darts = action.get("darts")
    if not isinstance(raw_darts, list):
        raw_darts = []
    turn = Turn.of(dart_from_dict(raw) for raw in raw_darts)
    outcome = apply_confirmed_turn(state, turn.confirm())
    return ActionResult(state=outcome.state, engine_events=outcome.engine_events)


def _apply_undo_turn(state: MatchState, action: dict[str, Any]) -> ActionResult:
    next_state = undo_last_turn(state)
    undone = state.turns[-1]
    return ActionResult(
        state=next_state,
        engine_events=[
            {"kind": "turn_undone", "playerId": undone.player_id, "round": undone.round_index},
            {"kind": "turn_start", "playerId": next_state.current_player.id},
        ],
    )


class TurnOrchestrator:
    """Owns one match: the pending dart buffer plus the confirmed snapshots.

    Undo restores the previous snapshot rather than reversing engine math.
    """

    def __init__(self, state: MatchState) -> None:
        self._state = state
        self._snapshots: list[MatchState] = []
        self._pending = Turn()

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def current_player(self) -> MatchPlayer:
        return self._state.current_player

    @property
    def pending_darts(self) -> tuple[Dart, ...]:
        return self._pending.darts

    def add_dart(self, dart: Dart) -> None:
        if self._state.is_finished:
            raise MatchFinishedError(f"match {self._state.match_id} is already finished")
        self._pending.add(dart)

    def pop_dart(self) -> Dart | None:
        return self._pending.pop()

    def confirm_turn(self, darts: Iterable[Dart] | None = None) -> TurnOutcome:
        if darts is None:
            confirmed = self._pending.confirm()
        else:
            confirmed = Turn.of(darts).confirm()
        try:
            outcome = apply_confirmed_turn(self._state, confirmed)
        except DartScoreError:
            if darts is None:
                self._pending = Turn.of(confirmed)
            raise
        self._snapshots.append(self._state)
        self._state = outcome.state
        self._pending = Turn()
        return outcome

    def undo_last_turn(self) -> MatchState:
        if not self._snapshots:
            raise NothingToUndoError(f"match {self._state.match_id} has no confirmed turns")
        self._state = self._snapshots.pop()
        self._pending = Turn()
        return self._state

    def result(self) -> MatchResult | None:
        if not self._state.is_finished:
            return None
        return build_match_result(self._state)

"""Shanghai rules: one target per round, instant win on single+double+triple."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from .darts import Dart, validate_darts
from .errors import MatchStateError
from .models import MatchPlayer, ShanghaiConfig, ShanghaiPlayerState, Verdict
from .rules import SHANGHAI_TIE_BREAK, TieBreak


logger = logging.getLogger(__name__)


def initial_states(roster: Sequence[MatchPlayer]) -> dict[str, ShanghaiPlayerState]:
    return {player.id: ShanghaiPlayerState() for player in roster}


def target_for(config: ShanghaiConfig, round_index: int) -> int:
    if not 0 <= round_index < config.round_count:
        raise MatchStateError(f"round {round_index} outside 0..{config.round_count - 1}")
    return config.targets[round_index]


def score_turn(target: int, darts: Sequence[Dart]) -> tuple[int, bool]:
    """Return the turn score on ``target`` and whether the turn is a Shanghai."""
    score = 0
    beds: set[int] = set()
    for dart in darts:
        if dart.segment != target:
            continue
        score += dart.score
        beds.add(dart.multiplier)
    return score, {1, 2, 3} <= beds


def apply_turn(
    states: Mapping[str, ShanghaiPlayerState],
    player_id: str,
    round_index: int,
    config: ShanghaiConfig,
    darts: Sequence[Dart],
) -> dict[str, ShanghaiPlayerState]:
    checked = validate_darts(darts)
    if player_id not in states:
        raise MatchStateError(f"unknown shanghai player {player_id!r}")
    target = target_for(config, round_index)

    current = states[player_id]
    if current.total_score < 0:
        raise MatchStateError(f"negative shanghai score for {player_id!r}")
    turn_score, is_shanghai = score_turn(target, checked)

    round_scores = dict(current.round_scores)
    round_scores[round_index] = turn_score
    shanghai_round = current.shanghai_round
    if is_shanghai and shanghai_round is None:
        shanghai_round = round_index

    next_states = dict(states)
    next_states[player_id] = ShanghaiPlayerState(
        total_score=current.total_score + turn_score,
        round_scores=round_scores,
        shanghai_round=shanghai_round,
    )
    logger.debug("shanghai round %s target %s: %s scored %s", round_index, target, player_id, turn_score)
    return next_states


def final_winner(
    states: Mapping[str, ShanghaiPlayerState],
    roster: Sequence[MatchPlayer],
    tie_break: TieBreak = SHANGHAI_TIE_BREAK,
) -> Verdict:
    """Pick the highest total in an explicit pass over the roster.

    Players level with the leader lose to the one earliest in the roster;
    their ids are reported in ``Verdict.tied_with``. The last turn of a
    Shanghai match always belongs to the last roster player, so evaluation
    order and roster order coincide and both policies resolve alike.
    """
    if tie_break not in (TieBreak.ROSTER_ORDER, TieBreak.FIRST_EVALUATED):
        raise MatchStateError(f"unsupported shanghai tie-break {tie_break!r}")
    ordered = sorted(roster, key=lambda player: player.order)
    best = max(states[player.id].total_score for player in ordered)
    leaders = [player.id for player in ordered if states[player.id].total_score == best]
    return Verdict.winner(leaders[0], tied_with=tuple(leaders[1:]))


def evaluate(
    states: Mapping[str, ShanghaiPlayerState],
    roster: Sequence[MatchPlayer],
    player_id: str,
    round_index: int,
    config: ShanghaiConfig,
) -> Verdict:
    if states[player_id].shanghai_round is not None:
        return Verdict.shanghai(player_id)
    last_player = max(roster, key=lambda player: player.order)
    if round_index == config.round_count - 1 and player_id == last_player.id:
        return final_winner(states, roster)
    return Verdict.proceed()

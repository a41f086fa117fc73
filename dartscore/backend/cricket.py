"""Cricket rules: marks on 15-20 and bull, overflow scoring, close-out win."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from .darts import Dart, Miss, validate_darts
from .errors import MatchStateError
from .models import CricketPlayerState, MatchPlayer
from .rules import BULL, CRICKET_TARGETS, CRICKET_TIE_BREAK, MARKS_TO_CLOSE, TieBreak


logger = logging.getLogger(__name__)


def initial_states(roster: Sequence[MatchPlayer]) -> dict[str, CricketPlayerState]:
    return {player.id: CricketPlayerState() for player in roster}


def point_value(segment: int) -> int:
    # bull scores 25 per mark, numbers their face value
    return BULL if segment == BULL else segment


def apply_turn(
    states: Mapping[str, CricketPlayerState],
    player_id: str,
    darts: Sequence[Dart],
) -> dict[str, CricketPlayerState]:
    """Return new per-player states after ``player_id`` throws ``darts``.

    Marks beyond the third on a number become points, but only while at
    least one other player still has that number open. Darts outside the
    cricket numbers are legitimate misses and contribute nothing.
    """
    checked = validate_darts(darts)
    _check_states(states, player_id)

    marks = dict(states[player_id].marks)
    points = states[player_id].points

    for dart in checked:
        if isinstance(dart, Miss) or dart.segment not in CRICKET_TARGETS:
            continue
        current = marks.get(dart.segment, 0)
        room = max(0, MARKS_TO_CLOSE - current)
        applied = min(dart.multiplier, room)
        marks[dart.segment] = current + applied

        overflow = dart.multiplier - applied
        if overflow > 0 and _opponent_open(states, player_id, dart.segment):
            points += overflow * point_value(dart.segment)

    next_states = dict(states)
    next_states[player_id] = CricketPlayerState(marks=marks, points=points)
    logger.debug("cricket turn applied for %s: points %s -> %s", player_id, states[player_id].points, points)
    return next_states


def _opponent_open(states: Mapping[str, CricketPlayerState], player_id: str, number: int) -> bool:
    return any(
        not state.is_closed(number)
        for other_id, state in states.items()
        if other_id != player_id
    )


def has_won(
    states: Mapping[str, CricketPlayerState],
    roster: Sequence[MatchPlayer],
    player_id: str,
    tie_break: TieBreak = CRICKET_TIE_BREAK,
) -> bool:
    """Evaluate the acting player only.

    With ``TieBreak.FIRST_EVALUATED`` a player who has closed every number
    wins on points >= every opponent, so of two players who could both claim
    the win with equal points the one whose turn is evaluated first takes it.
    ``TieBreak.ROSTER_ORDER`` requires a strict lead over every closed-out
    player level on points who sits earlier in the roster. A level player
    with numbers still open cannot claim the win and does not block it.
    """
    _check_states(states, player_id)
    player_state = states[player_id]
    if not player_state.all_closed():
        return False

    others = [player for player in roster if player.id != player_id]
    if tie_break is TieBreak.FIRST_EVALUATED:
        return all(player_state.points >= states[other.id].points for other in others)

    order = {player.id: player.order for player in roster}
    for other in others:
        other_points = states[other.id].points
        if other_points > player_state.points:
            return False
        if (
            other_points == player_state.points
            and order[other.id] < order[player_id]
            and states[other.id].all_closed()
        ):
            return False
    return True


def _check_states(states: Mapping[str, CricketPlayerState], player_id: str) -> None:
    if player_id not in states:
        raise MatchStateError(f"unknown cricket player {player_id!r}")
    for owner, state in states.items():
        if state.points < 0:
            raise MatchStateError(f"negative cricket points for {owner!r}")
        for number, count in state.marks.items():
            if number not in CRICKET_TARGETS or not 0 <= count <= MARKS_TO_CLOSE:
                raise MatchStateError(f"invalid marks {count} on {number} for {owner!r}")

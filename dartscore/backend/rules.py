"""Board constants, roster limits and tie-break policies."""

from __future__ import annotations

from enum import Enum


BULL = 25
BOARD_NUMBERS: tuple[int, ...] = tuple(range(1, 21))
VALID_SEGMENTS: frozenset[int] = frozenset((*BOARD_NUMBERS, BULL))

MAX_DARTS_PER_TURN = 3
MARKS_TO_CLOSE = 3

CRICKET_TARGETS: tuple[int, ...] = (20, 19, 18, 17, 16, 15, BULL)

SHANGHAI_DEFAULT_START = 1
SHANGHAI_DEFAULT_ROUNDS = 7

MAX_PLAYERS = 4
MIN_PLAYERS = {
    "cricket": 2,
    "shanghai": 2,
    "around-the-clock": 1,
}


class TieBreak(str, Enum):
    # whichever tied player's turn is evaluated first takes the match
    FIRST_EVALUATED = "first-evaluated"
    # lowest MatchPlayer.order among the tied players takes the match
    ROSTER_ORDER = "roster-order"


# Cricket is evaluated for the acting player only, so two players reaching
# "all closed, points >= everyone" with equal points on different turns are
# resolved in favour of whoever got there first. Order dependent.
CRICKET_TIE_BREAK = TieBreak.FIRST_EVALUATED

SHANGHAI_TIE_BREAK = TieBreak.ROSTER_ORDER

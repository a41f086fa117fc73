"""Domain models for match players, variant state, verdicts and store records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .darts import Dart
from .errors import InvalidMatchConfigError
from .rules import (
    BOARD_NUMBERS,
    BULL,
    CRICKET_TARGETS,
    SHANGHAI_DEFAULT_ROUNDS,
    SHANGHAI_DEFAULT_START,
)


class Variant(str, Enum):
    CRICKET = "cricket"
    SHANGHAI = "shanghai"
    CLOCK = "around-the-clock"


@dataclass(frozen=True)
class MatchPlayer:
    id: str
    name: str
    order: int


def _zero_marks() -> dict[int, int]:
    return {number: 0 for number in CRICKET_TARGETS}


@dataclass(frozen=True)
class CricketPlayerState:
    marks: dict[int, int] = field(default_factory=_zero_marks)
    points: int = 0

    def marks_on(self, number: int) -> int:
        return self.marks.get(number, 0)

    def is_closed(self, number: int) -> bool:
        return self.marks_on(number) >= 3

    def all_closed(self) -> bool:
        return all(self.is_closed(number) for number in CRICKET_TARGETS)


@dataclass(frozen=True)
class ShanghaiPlayerState:
    total_score: int = 0
    round_scores: dict[int, int] = field(default_factory=dict)
    shanghai_round: int | None = None


@dataclass(frozen=True)
class ClockPlayerState:
    progress_index: int = 0
    darts_used: int = 0


PlayerState = Union[CricketPlayerState, ShanghaiPlayerState, ClockPlayerState]


@dataclass(frozen=True)
class CricketConfig:
    @property
    def targets(self) -> tuple[int, ...]:
        return CRICKET_TARGETS


@dataclass(frozen=True)
class ShanghaiConfig:
    start_number: int = SHANGHAI_DEFAULT_START
    round_count: int = SHANGHAI_DEFAULT_ROUNDS

    def __post_init__(self) -> None:
        if self.round_count < 1:
            raise InvalidMatchConfigError("round_count must be >= 1")
        if self.start_number not in BOARD_NUMBERS:
            raise InvalidMatchConfigError("start_number must be between 1 and 20")
        # rounds past 20 are dropped so the last target is 20
        playable = BOARD_NUMBERS[-1] - self.start_number + 1
        if self.round_count > playable:
            object.__setattr__(self, "round_count", playable)

    @property
    def targets(self) -> tuple[int, ...]:
        return tuple(self.start_number + index for index in range(self.round_count))


@dataclass(frozen=True)
class ClockConfig:
    include_bull: bool = True
    include_doubles: bool = False
    include_triples: bool = False

    @property
    def targets(self) -> tuple[int, ...]:
        if self.include_bull:
            return (*BOARD_NUMBERS, BULL)
        return BOARD_NUMBERS


MatchConfig = Union[CricketConfig, ShanghaiConfig, ClockConfig]


class VerdictKind(str, Enum):
    CONTINUE = "continue"
    WINNER = "winner"
    SHANGHAI_INSTANT_WIN = "shanghai_instant_win"


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    player_id: str | None = None
    tied_with: tuple[str, ...] = ()

    @classmethod
    def proceed(cls) -> "Verdict":
        return cls(kind=VerdictKind.CONTINUE)

    @classmethod
    def winner(cls, player_id: str, tied_with: tuple[str, ...] = ()) -> "Verdict":
        return cls(kind=VerdictKind.WINNER, player_id=player_id, tied_with=tied_with)

    @classmethod
    def shanghai(cls, player_id: str) -> "Verdict":
        return cls(kind=VerdictKind.SHANGHAI_INSTANT_WIN, player_id=player_id)

    @property
    def is_terminal(self) -> bool:
        return self.kind is not VerdictKind.CONTINUE


@dataclass(frozen=True)
class ConfirmedTurn:
    player_id: str
    round_index: int
    darts: tuple[Dart, ...]


@dataclass(frozen=True)
class MatchRecord:
    match_id: str
    version: int
    state: dict[str, Any]
    events: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class MatchAccess:
    match_id: str
    role: str
    version: int
    state: dict[str, Any]


@dataclass(frozen=True)
class CreatedMatch:
    match_id: str
    host_token: str
    viewer_token: str

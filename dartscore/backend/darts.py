"""Dart primitives and the three-dart turn buffer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Union

from .errors import EmptyTurnError, InvalidDartError, TurnConfirmedError, TurnFullError
from .rules import BULL, MAX_DARTS_PER_TURN, VALID_SEGMENTS


@dataclass(frozen=True)
class Hit:
    """A dart that landed in a scoring bed."""

    segment: int
    multiplier: int

    def __post_init__(self) -> None:
        _check_hit(self.segment, self.multiplier)

    @property
    def score(self) -> int:
        return self.segment * self.multiplier


@dataclass(frozen=True)
class Miss:
    """A dart outside every scoring bed."""

    @property
    def segment(self) -> int:
        return 0

    @property
    def multiplier(self) -> int:
        return 0

    @property
    def score(self) -> int:
        return 0


Dart = Union[Hit, Miss]

MISS = Miss()


def _check_hit(segment: Any, multiplier: Any) -> None:
    if not isinstance(segment, int) or isinstance(segment, bool):
        raise InvalidDartError(f"segment must be an integer, got {segment!r}")
    if not isinstance(multiplier, int) or isinstance(multiplier, bool):
        raise InvalidDartError(f"multiplier must be an integer, got {multiplier!r}")
    if segment not in VALID_SEGMENTS:
        raise InvalidDartError(f"segment {segment} is not on the board")
    if multiplier not in (1, 2, 3):
        raise InvalidDartError(f"multiplier {multiplier} is not valid for a hit on {segment}")
    if segment == BULL and multiplier == 3:
        raise InvalidDartError("bull cannot be a triple")


def make_dart(segment: int, multiplier: int) -> Dart:
    """Parse a raw (segment, multiplier) pair; (0, 0) is a miss."""
    if segment == 0 and multiplier == 0:
        return MISS
    if segment == 0:
        raise InvalidDartError(f"miss cannot carry multiplier {multiplier}")
    if multiplier == 0:
        raise InvalidDartError(f"multiplier 0 is only valid for a miss, got segment {segment}")
    return Hit(segment=segment, multiplier=multiplier)


def dart_from_dict(payload: dict[str, Any]) -> Dart:
    if not isinstance(payload, dict):
        raise InvalidDartError(f"dart must be an object, got {payload!r}")
    return make_dart(payload.get("segment", 0), payload.get("multiplier", 0))


def dart_to_dict(dart: Dart) -> dict[str, int]:
    return {"segment": dart.segment, "multiplier": dart.multiplier, "score": dart.score}


def ensure_valid_dart(dart: Any) -> Dart:
    """Re-validate a dart that may have bypassed the constructors."""
    if isinstance(dart, Miss):
        return dart
    if isinstance(dart, Hit):
        _check_hit(dart.segment, dart.multiplier)
        return dart
    raise InvalidDartError(f"expected Hit or Miss, got {type(dart).__name__}")


def validate_darts(darts: Iterable[Any]) -> tuple[Dart, ...]:
    checked = tuple(ensure_valid_dart(dart) for dart in darts)
    if not checked:
        raise EmptyTurnError("a turn needs at least one dart")
    if len(checked) > MAX_DARTS_PER_TURN:
        raise TurnFullError(f"a turn holds at most {MAX_DARTS_PER_TURN} darts, got {len(checked)}")
    return checked


class Turn:
    """Buffer for the darts of one visit before confirmation.

    Darts are appended one at a time and may only be removed from the end.
    ``confirm`` hands out an immutable tuple and locks the buffer.
    """

    def __init__(self) -> None:
        self._darts: list[Dart] = []
        self._confirmed = False

    @classmethod
    def of(cls, darts: Iterable[Dart]) -> "Turn":
        turn = cls()
        for dart in darts:
            turn.add(dart)
        return turn

    def __len__(self) -> int:
        return len(self._darts)

    @property
    def darts(self) -> tuple[Dart, ...]:
        return tuple(self._darts)

    @property
    def is_full(self) -> bool:
        return len(self._darts) >= MAX_DARTS_PER_TURN

    @property
    def confirmed(self) -> bool:
        return self._confirmed

    def add(self, dart: Dart) -> None:
        self._ensure_open()
        if self.is_full:
            raise TurnFullError(f"a turn holds at most {MAX_DARTS_PER_TURN} darts")
        self._darts.append(ensure_valid_dart(dart))

    def pop(self) -> Dart | None:
        self._ensure_open()
        if not self._darts:
            return None
        return self._darts.pop()

    def confirm(self) -> tuple[Dart, ...]:
        self._ensure_open()
        if not self._darts:
            raise EmptyTurnError("cannot confirm an empty turn")
        self._confirmed = True
        return tuple(self._darts)

    def _ensure_open(self) -> None:
        if self._confirmed:
            raise TurnConfirmedError("turn was already confirmed")

"""Error taxonomy for dart validation, turn buffering and match state."""

from __future__ import annotations


class DartScoreError(Exception):
    """Base class for all scoring errors surfaced to callers."""


class InvalidDartError(DartScoreError, ValueError):
    """A dart with an impossible segment/multiplier combination."""


class TurnFullError(DartScoreError):
    """A fourth dart was added to a turn."""


class EmptyTurnError(DartScoreError):
    """A turn was confirmed without any darts."""


class TurnConfirmedError(DartScoreError):
    """A confirmed turn was edited."""


class InvalidMatchConfigError(DartScoreError, ValueError):
    """Roster or variant settings rejected at match start."""


class MatchFinishedError(DartScoreError):
    """A turn was submitted after the match ended."""


class NothingToUndoError(DartScoreError):
    """Undo requested before any turn was confirmed."""


class MatchStateError(DartScoreError):
    """Engine precondition violated; the match cannot continue."""

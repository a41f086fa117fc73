"""Around-the-Clock rules: hit 1..20 (and optionally bull) in sequence."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from .darts import Dart, validate_darts
from .errors import MatchStateError
from .models import ClockConfig, ClockPlayerState, MatchPlayer
from .rules import BULL


logger = logging.getLogger(__name__)


def initial_states(roster: Sequence[MatchPlayer]) -> dict[str, ClockPlayerState]:
    return {player.id: ClockPlayerState() for player in roster}


def is_hit(dart: Dart, target: int, config: ClockConfig) -> bool:
    if dart.segment != target:
        return False
    if config.include_doubles and config.include_triples:
        return dart.multiplier >= 1
    if config.include_doubles:
        return dart.multiplier in (1, 2)
    if config.include_triples:
        return dart.multiplier in (1, 3)
    return dart.multiplier == 1 or (dart.segment == BULL and dart.multiplier in (1, 2))


def apply_turn(
    states: Mapping[str, ClockPlayerState],
    player_id: str,
    config: ClockConfig,
    darts: Sequence[Dart],
) -> dict[str, ClockPlayerState]:
    """Advance ``player_id`` through the targets.

    Each dart is judged against the player's target at the moment it lands,
    so two hits in a turn advance twice. Darts left over after the last
    target are not counted.
    """
    checked = validate_darts(darts)
    targets = config.targets
    if player_id not in states:
        raise MatchStateError(f"unknown clock player {player_id!r}")
    current = states[player_id]
    if not 0 <= current.progress_index <= len(targets) or current.darts_used < 0:
        raise MatchStateError(f"clock progress {current.progress_index} out of range for {player_id!r}")

    progress = current.progress_index
    darts_used = current.darts_used
    for dart in checked:
        if progress >= len(targets):
            break
        if is_hit(dart, targets[progress], config):
            progress += 1
        darts_used += 1

    next_states = dict(states)
    next_states[player_id] = ClockPlayerState(progress_index=progress, darts_used=darts_used)
    logger.debug("clock turn applied for %s: progress %s -> %s", player_id, current.progress_index, progress)
    return next_states


def has_won(states: Mapping[str, ClockPlayerState], player_id: str, config: ClockConfig) -> bool:
    # no compensating turn for players later in the rotation
    return states[player_id].progress_index >= len(config.targets)


def current_target(state: ClockPlayerState, config: ClockConfig) -> int | None:
    targets = config.targets
    if state.progress_index >= len(targets):
        return None
    return targets[state.progress_index]

"""Match state snapshots: initial construction and JSON round trip."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Sequence

from . import clock, cricket, shanghai
from .darts import dart_from_dict, dart_to_dict
from .errors import InvalidMatchConfigError, MatchStateError
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
    VerdictKind,
)
from .rules import MAX_PLAYERS, MIN_PLAYERS


STATUS_RUNNING = "running"
STATUS_FINISHED = "finished"


@dataclass(frozen=True)
class MatchState:
    match_id: str
    variant: Variant
    roster: tuple[MatchPlayer, ...]
    config: MatchConfig
    players: dict[str, PlayerState]
    turn_index: int = 0
    round_index: int = 0
    status: str = STATUS_RUNNING
    verdict: Verdict = field(default_factory=Verdict.proceed)
    turns: tuple[ConfirmedTurn, ...] = ()

    @property
    def current_player(self) -> MatchPlayer:
        return self.roster[self.turn_index]

    @property
    def is_finished(self) -> bool:
        return self.status == STATUS_FINISHED

    @property
    def winner_id(self) -> str | None:
        return self.verdict.player_id

    def reset(self) -> "MatchState":
        """Return the zeroed state for the same roster and config."""
        return replace(
            self,
            players=_initial_players(self.variant, self.roster),
            turn_index=0,
            round_index=0,
            status=STATUS_RUNNING,
            verdict=Verdict.proceed(),
            turns=(),
        )


_CONFIG_TYPES: dict[Variant, type] = {
    Variant.CRICKET: CricketConfig,
    Variant.SHANGHAI: ShanghaiConfig,
    Variant.CLOCK: ClockConfig,
}


def _initial_players(variant: Variant, roster: Sequence[MatchPlayer]) -> dict[str, PlayerState]:
    if variant is Variant.CRICKET:
        return dict(cricket.initial_states(roster))
    if variant is Variant.SHANGHAI:
        return dict(shanghai.initial_states(roster))
    return dict(clock.initial_states(roster))


def build_roster(players: Sequence[Mapping[str, Any] | MatchPlayer]) -> tuple[MatchPlayer, ...]:
    """Snapshot the player directory entries in rotation order.

    Entries without an id get ``p1``, ``p2``, ... by position.
    """
    roster: list[MatchPlayer] = []
    for order, entry in enumerate(players):
        if isinstance(entry, MatchPlayer):
            player_id, name = entry.id, entry.name
        else:
            player_id = str(entry.get("id") or f"p{order + 1}")
            name = str(entry.get("name", "")).strip()
        if not name:
            raise InvalidMatchConfigError(f"player {order + 1} needs a name")
        roster.append(MatchPlayer(id=player_id, name=name, order=order))

    ids = [player.id for player in roster]
    if len(set(ids)) != len(ids):
        raise InvalidMatchConfigError("player ids must be unique")
    return tuple(roster)


def build_config(variant: Variant, settings: Mapping[str, Any] | None = None) -> MatchConfig:
    settings = dict(settings or {})
    if variant is Variant.CRICKET:
        return CricketConfig()
    if variant is Variant.SHANGHAI:
        return ShanghaiConfig(
            start_number=int(settings.get("startNumber", ShanghaiConfig.start_number)),
            round_count=int(settings.get("roundCount", ShanghaiConfig.round_count)),
        )
    return ClockConfig(
        include_bull=bool(settings.get("includeBull", ClockConfig.include_bull)),
        include_doubles=bool(settings.get("includeDoubles", ClockConfig.include_doubles)),
        include_triples=bool(settings.get("includeTriples", ClockConfig.include_triples)),
    )


def parse_variant(value: Variant | str) -> Variant:
    try:
        return Variant(value)
    except ValueError as exc:
        raise InvalidMatchConfigError(f"unknown variant {value!r}") from exc


def build_initial_state(
    match_id: str,
    variant: Variant | str,
    players: Sequence[Mapping[str, Any] | MatchPlayer],
    config: MatchConfig | None = None,
) -> MatchState:
    """Return a zeroed match for ``players`` in the given rotation order."""
    variant = parse_variant(variant)
    roster = build_roster(players)
    minimum = MIN_PLAYERS[variant.value]
    if not minimum <= len(roster) <= MAX_PLAYERS:
        raise InvalidMatchConfigError(f"{variant.value} needs {minimum}-{MAX_PLAYERS} players, got {len(roster)}")

    if config is None:
        config = build_config(variant)
    if not isinstance(config, _CONFIG_TYPES[variant]):
        raise InvalidMatchConfigError(f"{type(config).__name__} does not configure {variant.value}")

    return MatchState(
        match_id=match_id,
        variant=variant,
        roster=roster,
        config=config,
        players=_initial_players(variant, roster),
    )


def _config_to_dict(config: MatchConfig) -> dict[str, Any]:
    if isinstance(config, ShanghaiConfig):
        return {"startNumber": config.start_number, "roundCount": config.round_count, "targets": list(config.targets)}
    if isinstance(config, ClockConfig):
        return {
            "includeBull": config.include_bull,
            "includeDoubles": config.include_doubles,
            "includeTriples": config.include_triples,
            "targets": list(config.targets),
        }
    return {"targets": list(config.targets)}


def _player_to_dict(player_state: PlayerState) -> dict[str, Any]:
    if isinstance(player_state, CricketPlayerState):
        return {
            "marks": {str(number): count for number, count in player_state.marks.items()},
            "points": player_state.points,
        }
    if isinstance(player_state, ShanghaiPlayerState):
        return {
            "totalScore": player_state.total_score,
            "roundScores": {str(index): score for index, score in player_state.round_scores.items()},
            "shanghaiRound": player_state.shanghai_round,
        }
    return {"progressIndex": player_state.progress_index, "dartsUsed": player_state.darts_used}


def _player_from_dict(variant: Variant, payload: Mapping[str, Any]) -> PlayerState:
    if variant is Variant.CRICKET:
        return CricketPlayerState(
            marks={int(number): int(count) for number, count in payload["marks"].items()},
            points=int(payload["points"]),
        )
    if variant is Variant.SHANGHAI:
        return ShanghaiPlayerState(
            total_score=int(payload["totalScore"]),
            round_scores={int(index): int(score) for index, score in payload["roundScores"].items()},
            shanghai_round=payload.get("shanghaiRound"),
        )
    return ClockPlayerState(progress_index=int(payload["progressIndex"]), darts_used=int(payload["dartsUsed"]))


def verdict_to_dict(verdict: Verdict) -> dict[str, Any]:
    return {"kind": verdict.kind.value, "playerId": verdict.player_id, "tiedWith": list(verdict.tied_with)}


def _verdict_from_dict(payload: Mapping[str, Any]) -> Verdict:
    return Verdict(
        kind=VerdictKind(payload["kind"]),
        player_id=payload.get("playerId"),
        tied_with=tuple(payload.get("tiedWith", [])),
    )


def state_to_dict(state: MatchState) -> dict[str, Any]:
    """Serialize a match for JSON transport and snapshot storage."""
    return {
        "id": state.match_id,
        "variant": state.variant.value,
        "status": state.status,
        "round": state.round_index,
        "turnIndex": state.turn_index,
        "currentPlayerId": None if state.is_finished else state.current_player.id,
        "roster": [{"id": player.id, "name": player.name, "order": player.order} for player in state.roster],
        "config": _config_to_dict(state.config),
        "players": {player_id: _player_to_dict(player_state) for player_id, player_state in state.players.items()},
        "verdict": verdict_to_dict(state.verdict),
        "turns": [
            {
                "playerId": turn.player_id,
                "round": turn.round_index,
                "darts": [dart_to_dict(dart) for dart in turn.darts],
            }
            for turn in state.turns
        ],
    }


def state_from_dict(payload: Mapping[str, Any]) -> MatchState:
    try:
        variant = Variant(payload["variant"])
        roster = tuple(
            MatchPlayer(id=entry["id"], name=entry["name"], order=int(entry["order"])) for entry in payload["roster"]
        )
        config = build_config(variant, payload.get("config"))
        return MatchState(
            match_id=payload["id"],
            variant=variant,
            roster=roster,
            config=config,
            players={
                player_id: _player_from_dict(variant, player_payload)
                for player_id, player_payload in payload["players"].items()
            },
            turn_index=int(payload["turnIndex"]),
            round_index=int(payload["round"]),
            status=payload["status"],
            verdict=_verdict_from_dict(payload["verdict"]),
            turns=tuple(
                ConfirmedTurn(
                    player_id=turn["playerId"],
                    round_index=int(turn["round"]),
                    darts=tuple(dart_from_dict(dart) for dart in turn["darts"]),
                )
                for turn in payload.get("turns", [])
            ),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MatchStateError(f"corrupt match snapshot: {exc}") from exc

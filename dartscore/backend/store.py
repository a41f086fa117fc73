"""Persistence interfaces and implementations for match data.

A store is the single authority for each match it holds: scorer actions
are applied one at a time, so remote clients never race each other on the
same state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
import threading
from typing import Any, Mapping, Protocol, Sequence
import uuid

from dartscore.backend.engine import apply_match_action
from dartscore.backend.models import CreatedMatch, MatchAccess, MatchRecord
from dartscore.backend.results import build_match_result
from dartscore.backend.security import ROLE_HOST, ROLE_VIEWER, hash_token, verify_token
from dartscore.backend.state import (
    MatchState,
    build_config,
    build_initial_state,
    parse_variant,
    state_from_dict,
    state_to_dict,
)


logger = logging.getLogger(__name__)


class MatchStore(Protocol):
    def create_match(
        self,
        variant: str,
        players: Sequence[Mapping[str, Any]],
        settings: Mapping[str, Any] | None,
        host_token: str,
        viewer_token: str,
    ) -> CreatedMatch:
        """Create a match and persist its initial snapshot plus token hashes."""

    def get_match_state(self, match_id: str, raw_token: str) -> MatchRecord | None:
        """Return match state when token is valid."""

    def get_match_access(self, match_id: str, raw_token: str) -> MatchAccess | None:
        """Return token role and match state when token is valid."""

    def apply_action(self, match_id: str, raw_token: str, action: dict[str, Any]) -> MatchRecord | None:
        """Apply a scorer action and return the new state when authorized."""

    def get_match_result(self, match_id: str, raw_token: str) -> dict[str, Any] | None:
        """Return the terminal result of a finished match when token is valid."""


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_state(
    variant: str, players: Sequence[Mapping[str, Any]], settings: Mapping[str, Any] | None
) -> tuple[str, MatchState]:
    match_id = str(uuid.uuid4())
    parsed = parse_variant(variant)
    state = build_initial_state(
        match_id=match_id,
        variant=parsed,
        players=players,
        config=build_config(parsed, settings),
    )
    return match_id, state


@dataclass
class InMemoryMatchStore:
    server_salt: str

    def __post_init__(self) -> None:
        self._matches: dict[str, dict] = {}
        self._lock = threading.Lock()

    def create_match(
        self,
        variant: str,
        players: Sequence[Mapping[str, Any]],
        settings: Mapping[str, Any] | None,
        host_token: str,
        viewer_token: str,
    ) -> CreatedMatch:
        match_id, state = _new_state(variant, players, settings)
        now = _utc_now_iso()
        with self._lock:
            self._matches[match_id] = {
                "state": state,
                "version": 1,
                "tokens": {
                    ROLE_HOST: hash_token(host_token, self.server_salt),
                    ROLE_VIEWER: hash_token(viewer_token, self.server_salt),
                },
                "log": [],
                "result": None,
                "createdAt": now,
                "updatedAt": now,
            }
        logger.info("created %s match %s with %d players", state.variant.value, match_id, len(state.roster))
        return CreatedMatch(match_id=match_id, host_token=host_token, viewer_token=viewer_token)

    def get_match_state(self, match_id: str, raw_token: str) -> MatchRecord | None:
        access = self.get_match_access(match_id=match_id, raw_token=raw_token)
        if access is None:
            return None
        return MatchRecord(match_id=match_id, version=access.version, state=access.state)

    def get_match_access(self, match_id: str, raw_token: str) -> MatchAccess | None:
        payload = self._matches.get(match_id)
        if payload is None:
            return None

        role: str | None = None
        for candidate_role, token_hash in payload["tokens"].items():
            if verify_token(raw_token, token_hash, self.server_salt):
                role = candidate_role
                break

        if role is None:
            return None
        return MatchAccess(
            match_id=match_id,
            role=role,
            version=payload["version"],
            state=state_to_dict(payload["state"]),
        )

    def apply_action(self, match_id: str, raw_token: str, action: dict[str, Any]) -> MatchRecord | None:
        with self._lock:
            access = self.get_match_access(match_id=match_id, raw_token=raw_token)
            if access is None or access.role != ROLE_HOST:
                logger.warning("rejected %s on match %s: not the scorer", action.get("type"), match_id)
                return None
            payload = self._matches[match_id]
            reduced = apply_match_action(state=payload["state"], action=action)
            if not reduced.engine_events:
                logger.info("ignored %s on match %s: nothing changed", action.get("type"), match_id)
                return MatchRecord(match_id=match_id, version=access.version, state=access.state)
            payload["state"] = reduced.state
            payload["version"] += 1
            payload["updatedAt"] = _utc_now_iso()
            payload["log"].extend(reduced.engine_events)
            payload["result"] = build_match_result(reduced.state).to_dict() if reduced.state.is_finished else None
            if reduced.state.is_finished:
                logger.info("match %s finished, winner %s", match_id, reduced.state.winner_id)
            return MatchRecord(
                match_id=match_id,
                version=payload["version"],
                state=state_to_dict(reduced.state),
                events=tuple(reduced.engine_events),
            )

    def get_match_result(self, match_id: str, raw_token: str) -> dict[str, Any] | None:
        if self.get_match_access(match_id=match_id, raw_token=raw_token) is None:
            return None
        return self._matches[match_id]["result"]


_ACCESS_QUERY = """
    SELECT t.role, e.current_version, s.state_json
    FROM matches e
    JOIN match_snapshots s
      ON s.match_id = e.id AND s.version = e.current_version
    JOIN match_tokens t
      ON t.match_id = e.id
    WHERE e.id = %s
      AND t.token_hash = %s
      AND t.revoked_at IS NULL
"""


@dataclass
class PostgresMatchStore:
    database_url: str
    server_salt: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def create_match(
        self,
        variant: str,
        players: Sequence[Mapping[str, Any]],
        settings: Mapping[str, Any] | None,
        host_token: str,
        viewer_token: str,
    ) -> CreatedMatch:
        match_id, state = _new_state(variant, players, settings)
        state_json = state_to_dict(state)
        now = datetime.now(timezone.utc)

        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO matches (id, variant, status, current_version, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    (match_id, state.variant.value, state.status, 1, now, now),
                )
                cur.execute(
                    """
                    INSERT INTO match_tokens (id, match_id, role, token_hash, created_at, revoked_at)
                    VALUES (%s, %s, 'HOST', %s, %s, NULL), (%s, %s, 'VIEWER', %s, %s, NULL)
                    """,
                    (
                        str(uuid.uuid4()),
                        match_id,
                        hash_token(host_token, self.server_salt),
                        now,
                        str(uuid.uuid4()),
                        match_id,
                        hash_token(viewer_token, self.server_salt),
                        now,
                    ),
                )
                cur.execute(
                    """
                    INSERT INTO match_snapshots (id, match_id, version, created_at, state_json)
                    VALUES (%s, %s, %s, %s, %s::jsonb)
                    """,
                    (str(uuid.uuid4()), match_id, 1, now, json.dumps(state_json)),
                )
            conn.commit()

        logger.info("created %s match %s with %d players", state.variant.value, match_id, len(state.roster))
        return CreatedMatch(match_id=match_id, host_token=host_token, viewer_token=viewer_token)

    def get_match_state(self, match_id: str, raw_token: str) -> MatchRecord | None:
        access = self.get_match_access(match_id=match_id, raw_token=raw_token)
        if access is None:
            return None
        return MatchRecord(match_id=match_id, version=access.version, state=access.state)

    def get_match_access(self, match_id: str, raw_token: str) -> MatchAccess | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                return self._fetch_access(cur, match_id=match_id, raw_token=raw_token, for_update=False)

    def _fetch_access(self, cur: Any, match_id: str, raw_token: str, for_update: bool) -> MatchAccess | None:
        query = _ACCESS_QUERY + ("FOR UPDATE OF e" if for_update else "")
        cur.execute(query, (match_id, hash_token(raw_token, self.server_salt)))
        row = cur.fetchone()
        if row is None:
            return None

        role, version, state_json = row
        state = state_json if isinstance(state_json, dict) else json.loads(state_json)
        return MatchAccess(match_id=match_id, role=role, version=int(version), state=state)

    def apply_action(self, match_id: str, raw_token: str, action: dict[str, Any]) -> MatchRecord | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                # row lock serializes concurrent scorers on the same match
                access = self._fetch_access(cur, match_id=match_id, raw_token=raw_token, for_update=True)
                if access is None or access.role != ROLE_HOST:
                    logger.warning("rejected %s on match %s: not the scorer", action.get("type"), match_id)
                    return None

                previous = state_from_dict(access.state)
                reduced = apply_match_action(state=previous, action=action)
                if not reduced.engine_events:
                    logger.info("ignored %s on match %s: nothing changed", action.get("type"), match_id)
                    return MatchRecord(match_id=match_id, version=access.version, state=access.state)
                next_version = access.version + 1
                next_json = state_to_dict(reduced.state)
                now = datetime.now(timezone.utc)

                cur.execute(
                    """
                    INSERT INTO match_turns (id, match_id, version, kind, payload_json, created_at)
                    VALUES (%s, %s, %s, %s, %s::jsonb, %s)
                    """,
                    (
                        str(uuid.uuid4()),
                        match_id,
                        next_version,
                        str(action.get("type", "")).upper(),
                        json.dumps(reduced.engine_events),
                        now,
                    ),
                )
                cur.execute(
                    """
                    INSERT INTO match_snapshots (id, match_id, version, created_at, state_json)
                    VALUES (%s, %s, %s, %s, %s::jsonb)
                    """,
                    (str(uuid.uuid4()), match_id, next_version, now, json.dumps(next_json)),
                )
                cur.execute(
                    """
                    UPDATE matches
                    SET current_version = %s, status = %s, updated_at = %s
                    WHERE id = %s
                    """,
                    (next_version, reduced.state.status, now, match_id),
                )
                if reduced.state.is_finished:
                    result = build_match_result(reduced.state)
                    cur.execute(
                        """
                        INSERT INTO match_results (match_id, winner_id, verdict, result_json, created_at)
                        VALUES (%s, %s, %s, %s::jsonb, %s)
                        ON CONFLICT (match_id) DO UPDATE
                        SET winner_id = EXCLUDED.winner_id, verdict = EXCLUDED.verdict,
                            result_json = EXCLUDED.result_json, created_at = EXCLUDED.created_at
                        """,
                        (match_id, result.winner_id, result.verdict_kind, json.dumps(result.to_dict()), now),
                    )
                elif previous.is_finished:
                    cur.execute("DELETE FROM match_results WHERE match_id = %s", (match_id,))
            conn.commit()

        if reduced.state.is_finished:
            logger.info("match %s finished, winner %s", match_id, reduced.state.winner_id)
        return MatchRecord(
            match_id=match_id,
            version=next_version,
            state=next_json,
            events=tuple(reduced.engine_events),
        )

    def get_match_result(self, match_id: str, raw_token: str) -> dict[str, Any] | None:
        access = self.get_match_access(match_id=match_id, raw_token=raw_token)
        if access is None:
            return None
        state = state_from_dict(access.state)
        if not state.is_finished:
            return None
        return build_match_result(state).to_dict()


def create_store(database_url: str | None, server_salt: str) -> MatchStore:
    if database_url:
        return PostgresMatchStore(database_url=database_url, server_salt=server_salt)
    return InMemoryMatchStore(server_salt=server_salt)

"""FastAPI endpoints for match creation, turn submission and websocket sync."""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from typing import Any, Literal

from fastapi import Depends, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .errors import DartScoreError, MatchFinishedError, MatchStateError, NothingToUndoError
from .models import MatchRecord
from .security import generate_token
from .store import InMemoryMatchStore, MatchStore


logger = logging.getLogger(__name__)


class PlayerIn(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)


class MatchSettingsIn(BaseModel):
    start_number: int | None = None
    round_count: int | None = None
    include_bull: bool | None = None
    include_doubles: bool | None = None
    include_triples: bool | None = None

    def to_config(self) -> dict[str, Any]:
        keys = {
            "start_number": "startNumber",
            "round_count": "roundCount",
            "include_bull": "includeBull",
            "include_doubles": "includeDoubles",
            "include_triples": "includeTriples",
        }
        return {keys[name]: value for name, value in self.model_dump(exclude_none=True).items()}


class CreateMatchRequest(BaseModel):
    variant: Literal["cricket", "shanghai", "around-the-clock"]
    players: list[PlayerIn] = Field(min_length=1)
    settings: MatchSettingsIn = Field(default_factory=MatchSettingsIn)


class CreateMatchResponse(BaseModel):
    match_id: str
    host_token: str
    viewer_token: str


class DartIn(BaseModel):
    segment: int = Field(ge=0, le=25)
    multiplier: int = Field(ge=0, le=3)


class TurnEnvelope(BaseModel):
    token: str = Field(min_length=1)
    darts: list[DartIn]


class TokenEnvelope(BaseModel):
    token: str = Field(min_length=1)


class MatchStateResponse(BaseModel):
    version: int
    state: dict[str, Any]
    result: dict[str, Any] | None = None
    events: list[dict[str, Any]] = Field(default_factory=list)


def _status_for(exc: DartScoreError) -> int:
    if isinstance(exc, (MatchFinishedError, NothingToUndoError, MatchStateError)):
        return 409
    return 422


class MatchWebSocketHub:
    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, match_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[match_id].add(websocket)

    def disconnect(self, match_id: str, websocket: WebSocket) -> None:
        connections = self._connections.get(match_id)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(match_id, None)

    async def send_state(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await websocket.send_json({"type": "state.full", **payload})

    async def broadcast_state(self, match_id: str, payload: dict[str, Any]) -> None:
        stale_connections: list[WebSocket] = []
        for websocket in list(self._connections.get(match_id, set())):
            try:
                await self.send_state(websocket, payload)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(match_id=match_id, websocket=websocket)


def _default_store() -> MatchStore:
    server_salt = os.getenv("DARTSCORE_SERVER_SALT", "dev-salt")
    return InMemoryMatchStore(server_salt=server_salt)


def create_app(store: MatchStore | None = None) -> FastAPI:
    app = FastAPI(title="Dartscore API", version="0.1.0")
    match_store = store if store is not None else _default_store()
    websocket_hub = MatchWebSocketHub()
    app.state.websocket_hub = websocket_hub

    def get_store() -> MatchStore:
        return match_store

    def to_response(record: MatchRecord, local_store: MatchStore, token: str) -> MatchStateResponse:
        result = None
        if record.state.get("status") == "finished":
            result = local_store.get_match_result(match_id=record.match_id, raw_token=token)
        return MatchStateResponse(
            version=record.version,
            state=record.state,
            result=result,
            events=list(record.events),
        )

    async def publish(match_id: str, response: MatchStateResponse) -> None:
        await websocket_hub.broadcast_state(match_id=match_id, payload=response.model_dump())

    async def run_action(match_id: str, token: str, action: dict[str, Any], local_store: MatchStore) -> MatchStateResponse:
        try:
            record = local_store.apply_action(match_id=match_id, raw_token=token, action=action)
        except DartScoreError as exc:
            logger.warning("rejected %s on match %s: %s", action["type"], match_id, exc)
            raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc
        if record is None:
            raise HTTPException(status_code=403, detail="Action not allowed")
        response = to_response(record, local_store, token)
        if record.events:
            await publish(match_id=match_id, response=response)
        return response

    @app.post("/api/matches", response_model=CreateMatchResponse)
    def create_match(
        payload: CreateMatchRequest,
        local_store: MatchStore = Depends(get_store),
    ) -> CreateMatchResponse:
        host_token = generate_token()
        viewer_token = generate_token()
        try:
            created = local_store.create_match(
                variant=payload.variant,
                players=[player.model_dump(exclude_none=True) for player in payload.players],
                settings=payload.settings.to_config(),
                host_token=host_token,
                viewer_token=viewer_token,
            )
        except DartScoreError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return CreateMatchResponse(
            match_id=created.match_id,
            host_token=created.host_token,
            viewer_token=created.viewer_token,
        )

    @app.get("/api/matches/{match_id}", response_model=MatchStateResponse)
    def get_match(
        match_id: str,
        token: str = Query(min_length=1),
        local_store: MatchStore = Depends(get_store),
    ) -> MatchStateResponse:
        record = local_store.get_match_state(match_id=match_id, raw_token=token)
        if record is None:
            raise HTTPException(status_code=404, detail="Match not found or token invalid")
        return to_response(record, local_store, token)

    @app.post("/api/matches/{match_id}/turns", response_model=MatchStateResponse)
    async def post_turn(
        match_id: str,
        payload: TurnEnvelope,
        local_store: MatchStore = Depends(get_store),
    ) -> MatchStateResponse:
        action = {"type": "CONFIRM_TURN", "darts": [dart.model_dump() for dart in payload.darts]}
        return await run_action(match_id=match_id, token=payload.token, action=action, local_store=local_store)

    @app.post("/api/matches/{match_id}/undo", response_model=MatchStateResponse)
    async def post_undo(
        match_id: str,
        payload: TokenEnvelope,
        local_store: MatchStore = Depends(get_store),
    ) -> MatchStateResponse:
        return await run_action(
            match_id=match_id,
            token=payload.token,
            action={"type": "UNDO_TURN"},
            local_store=local_store,
        )

    @app.websocket("/ws/matches/{match_id}")
    async def match_ws(
        websocket: WebSocket,
        match_id: str,
        local_store: MatchStore = Depends(get_store),
    ) -> None:
        token = websocket.query_params.get("token")
        if token is None or token == "":
            await websocket.close(code=1008)
            return
        record = local_store.get_match_state(match_id=match_id, raw_token=token)
        if record is None:
            await websocket.close(code=1008)
            return

        await websocket_hub.connect(match_id=match_id, websocket=websocket)
        await websocket_hub.send_state(
            websocket=websocket,
            payload=to_response(record, local_store, token).model_dump(),
        )

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(match_id=match_id, websocket=websocket)

    return app


app = create_app()

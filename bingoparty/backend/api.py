"""FastAPI endpoints for bingo rooms and websocket snapshot push."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .board import BOARD_SIZE
from .config import load_settings
from .controller import SessionController
from .errors import ConditionFailed, GameAlreadyStarted, SessionExists, SessionNotFound
from .models import MutationResult
from .security import actor_id_for, generate_token, normalize_room_code
from .store import SessionStore, create_store

logger = logging.getLogger(__name__)


class IdentityResponse(BaseModel):
    token: str
    actor_id: str


class TokenEnvelope(BaseModel):
    token: str = Field(min_length=1)


class NamedEnvelope(TokenEnvelope):
    display_name: str = Field(min_length=1, max_length=40)


class MarkEnvelope(TokenEnvelope):
    cell_index: int = Field(ge=0, lt=BOARD_SIZE)
    cell_value: int = Field(ge=0, le=75)


class CreateSessionResponse(BaseModel):
    code: str
    state: dict[str, Any]


class SessionStateResponse(BaseModel):
    state: dict[str, Any]


class MutationResponse(BaseModel):
    outcome: str
    reason: str
    state: dict[str, Any]


class SessionWebSocketHub:
    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, code: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[code].add(websocket)

    def disconnect(self, code: str, websocket: WebSocket) -> None:
        connections = self._connections.get(code)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(code, None)

    async def send_state(self, websocket: WebSocket, state: dict[str, Any]) -> None:
        await websocket.send_json({"type": "state.full", "state": state})

    async def broadcast_state(self, code: str, state: dict[str, Any]) -> None:
        stale_connections: list[WebSocket] = []
        for websocket in list(self._connections.get(code, set())):
            try:
                await self.send_state(websocket, state)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            logger.info("dropping stale websocket for room %s", code)
            self.disconnect(code=code, websocket=websocket)


def _default_store() -> SessionStore:
    return create_store(database_url=load_settings().database_url)


def _to_response(result: MutationResult) -> MutationResponse:
    return MutationResponse(outcome=result.outcome, reason=result.reason, state=result.state)


def create_app(store: SessionStore | None = None, server_salt: str | None = None) -> FastAPI:
    app = FastAPI(title="Bingo Party API", version="0.1.0")
    session_store = store if store is not None else _default_store()
    salt = server_salt if server_salt is not None else load_settings().server_salt
    websocket_hub = SessionWebSocketHub()
    app.state.websocket_hub = websocket_hub

    async def publish_state(code: str, state: dict[str, Any]) -> None:
        await websocket_hub.broadcast_state(code=code, state=state)

    app.state.publish_state = publish_state

    def get_store() -> SessionStore:
        return session_store

    def controller_for(token: str, local_store: SessionStore) -> SessionController:
        return SessionController(store=local_store, actor_id=actor_id_for(token, salt))

    async def respond(code: str, result: MutationResult) -> MutationResponse:
        if result.applied:
            await publish_state(code=code, state=result.state)
        return _to_response(result)

    @app.post("/api/identity", response_model=IdentityResponse)
    def create_identity() -> IdentityResponse:
        token = generate_token()
        return IdentityResponse(token=token, actor_id=actor_id_for(token, salt))

    @app.post("/api/sessions", response_model=CreateSessionResponse)
    def create_session(
        payload: NamedEnvelope,
        local_store: SessionStore = Depends(get_store),
    ) -> CreateSessionResponse:
        controller = controller_for(payload.token, local_store)
        try:
            code = controller.create_session(display_name=payload.display_name)
        except SessionExists:
            raise HTTPException(status_code=503, detail="Could not allocate a room code")
        state = local_store.get_session(code)
        if state is None:
            raise HTTPException(status_code=404, detail="Room not found")
        return CreateSessionResponse(code=code, state=state)

    @app.get("/api/sessions/{code}", response_model=SessionStateResponse)
    def get_session(
        code: str,
        local_store: SessionStore = Depends(get_store),
    ) -> SessionStateResponse:
        state = local_store.get_session(normalize_room_code(code))
        if state is None:
            raise HTTPException(status_code=404, detail="Room not found")
        return SessionStateResponse(state=state)

    @app.post("/api/sessions/{code}/join", response_model=MutationResponse)
    async def join_session(
        code: str,
        payload: NamedEnvelope,
        local_store: SessionStore = Depends(get_store),
    ) -> MutationResponse:
        code = normalize_room_code(code)
        controller = controller_for(payload.token, local_store)
        try:
            result = controller.join_session(code, display_name=payload.display_name)
        except SessionNotFound:
            raise HTTPException(status_code=404, detail="Room not found")
        except GameAlreadyStarted:
            raise HTTPException(status_code=409, detail="Game already started")
        return await respond(code, result)

    @app.post("/api/sessions/{code}/start", response_model=MutationResponse)
    async def start_session(
        code: str,
        payload: TokenEnvelope,
        local_store: SessionStore = Depends(get_store),
    ) -> MutationResponse:
        code = normalize_room_code(code)
        controller = controller_for(payload.token, local_store)
        try:
            result = controller.start_session(code)
        except SessionNotFound:
            raise HTTPException(status_code=404, detail="Room not found")
        except ConditionFailed:
            raise HTTPException(status_code=409, detail="Room changed, try again")
        return await respond(code, result)

    @app.post("/api/sessions/{code}/draw", response_model=MutationResponse)
    async def draw_number(
        code: str,
        payload: TokenEnvelope,
        local_store: SessionStore = Depends(get_store),
    ) -> MutationResponse:
        code = normalize_room_code(code)
        controller = controller_for(payload.token, local_store)
        try:
            result = controller.draw_number(code)
        except SessionNotFound:
            raise HTTPException(status_code=404, detail="Room not found")
        return await respond(code, result)

    @app.post("/api/sessions/{code}/mark", response_model=MutationResponse)
    async def mark_cell(
        code: str,
        payload: MarkEnvelope,
        local_store: SessionStore = Depends(get_store),
    ) -> MutationResponse:
        code = normalize_room_code(code)
        controller = controller_for(payload.token, local_store)
        try:
            result = controller.mark_cell(code, cell_index=payload.cell_index, cell_value=payload.cell_value)
        except SessionNotFound:
            raise HTTPException(status_code=404, detail="Room not found")
        except ConditionFailed:
            raise HTTPException(status_code=409, detail="Room changed, try again")
        return await respond(code, result)

    @app.post("/api/sessions/{code}/restart", response_model=MutationResponse)
    async def restart_session(
        code: str,
        payload: TokenEnvelope,
        local_store: SessionStore = Depends(get_store),
    ) -> MutationResponse:
        code = normalize_room_code(code)
        controller = controller_for(payload.token, local_store)
        try:
            result = controller.restart_session(code)
        except SessionNotFound:
            raise HTTPException(status_code=404, detail="Room not found")
        return await respond(code, result)

    @app.websocket("/ws/sessions/{code}")
    async def session_ws(
        websocket: WebSocket,
        code: str,
        local_store: SessionStore = Depends(get_store),
    ) -> None:
        code = normalize_room_code(code)
        state = local_store.get_session(code)
        if state is None:
            await websocket.close(code=1008)
            return

        await websocket_hub.connect(code=code, websocket=websocket)
        await websocket_hub.send_state(websocket=websocket, state=state)

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(code=code, websocket=websocket)

    return app


app = create_app()

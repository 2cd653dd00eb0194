"""
API Router for rooms.
"""

import json
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from backend.api.v1.schemas import (
    ActionRequest,
    CreateRoomRequest,
    GameInfo,
    JoinRoomRequest,
    KickRequest,
    LeaveResponse,
    PlayerRequest,
    RoomSession,
)
from backend.room_service import RoomService, get_room_service
from partyhub.errors import (
    GameAlreadyStartedError,
    GameRuleError,
    NotHostError,
    RoomFullError,
    RoomNotFoundError,
)

logger = logging.getLogger("backend.api.v1.routers")

api_router = APIRouter()


def _http_error(exc: GameRuleError) -> HTTPException:
    if isinstance(exc, RoomNotFoundError):
        status_code = 404
    elif isinstance(exc, (RoomFullError, GameAlreadyStartedError)):
        status_code = 409
    elif isinstance(exc, NotHostError):
        status_code = 403
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})


@api_router.get("/games", response_model=List[GameInfo], tags=["Games"])
async def list_games(service: RoomService = Depends(get_room_service)):
    return [
        GameInfo(
            game=kind,
            title=rules.title,
            min_players=rules.min_players,
            max_players=rules.max_players,
            available=kind.value not in service.settings.MAINTENANCE_GAMES,
        )
        for kind, rules in service.engine.games().items()
    ]


@api_router.post("/rooms", response_model=RoomSession, tags=["Rooms"])
async def create_room(body: CreateRoomRequest, service: RoomService = Depends(get_room_service)):
    try:
        room, player_id = await service.create_room(body.game, body.name)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return RoomSession(room_id=room.room_id, player_id=player_id, view=service.engine.project(room, player_id))


@api_router.post("/rooms/{room_id}/join", response_model=RoomSession, tags=["Rooms"])
async def join_room(room_id: str, body: JoinRoomRequest, service: RoomService = Depends(get_room_service)):
    try:
        room, player_id = await service.join(room_id.upper(), body.name, body.player_id)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return RoomSession(room_id=room.room_id, player_id=player_id, view=service.engine.project(room, player_id))


@api_router.get("/rooms/{room_id}", tags=["Rooms"])
async def get_room(room_id: str, player_id: str = "", service: RoomService = Depends(get_room_service)):
    try:
        return await service.view(room_id.upper(), player_id)
    except GameRuleError as exc:
        raise _http_error(exc) from exc


@api_router.post("/rooms/{room_id}/actions", tags=["Rooms"])
async def apply_action(room_id: str, body: ActionRequest, service: RoomService = Depends(get_room_service)):
    try:
        room = await service.apply_action(room_id.upper(), body.player_id, body.action, body.payload)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return service.engine.project(room, body.player_id)


@api_router.post("/rooms/{room_id}/leave", response_model=LeaveResponse, tags=["Rooms"])
async def leave_room(room_id: str, body: PlayerRequest, service: RoomService = Depends(get_room_service)):
    try:
        room = await service.leave(room_id.upper(), body.player_id)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return LeaveResponse(room_id=room_id.upper(), closed=room is None)


@api_router.post("/rooms/{room_id}/kick", tags=["Rooms"])
async def kick_player(room_id: str, body: KickRequest, service: RoomService = Depends(get_room_service)):
    try:
        room = await service.kick(room_id.upper(), body.player_id, body.target_id)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return service.engine.project(room, body.player_id)


@api_router.post("/rooms/{room_id}/ready", tags=["Rooms"])
async def toggle_ready(room_id: str, body: PlayerRequest, service: RoomService = Depends(get_room_service)):
    try:
        room = await service.toggle_ready(room_id.upper(), body.player_id)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return service.engine.project(room, body.player_id)


@api_router.post("/rooms/{room_id}/start", tags=["Rooms"])
async def start_game(room_id: str, body: PlayerRequest, service: RoomService = Depends(get_room_service)):
    try:
        room = await service.start(room_id.upper(), body.player_id)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return service.engine.project(room, body.player_id)


@api_router.post("/rooms/{room_id}/reset", tags=["Rooms"])
async def reset_room(room_id: str, body: PlayerRequest, service: RoomService = Depends(get_room_service)):
    try:
        room = await service.reset_to_lobby(room_id.upper(), body.player_id)
    except GameRuleError as exc:
        raise _http_error(exc) from exc
    return service.engine.project(room, body.player_id)


@api_router.websocket("/rooms/{room_id}/ws")
async def room_ws(
    websocket: WebSocket,
    room_id: str,
    player_id: str = "",
    service: RoomService = Depends(get_room_service),
):
    room_id = room_id.upper()
    manager = service.connections
    try:
        await manager.connect(room_id, player_id, websocket)
    except RoomNotFoundError:
        await websocket.close(code=4404)
        return
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                payload: Dict[str, Any] = json.loads(raw)
            except json.JSONDecodeError:
                continue
            message_type = payload.get("type")
            try:
                if message_type == "ping":
                    await websocket.send_json({"type": "pong"})
                elif message_type == "ready":
                    await service.toggle_ready(room_id, player_id)
                elif message_type == "action":
                    await service.apply_action(
                        room_id, player_id, payload.get("action") or "", payload.get("payload") or {}
                    )
                else:
                    await websocket.send_json(
                        {"type": "game_error", "code": "UNKNOWN_MESSAGE", "message": "Unknown message type."}
                    )
            except GameRuleError as exc:
                await websocket.send_json({"type": "game_error", "code": exc.code, "message": exc.message})
    except WebSocketDisconnect:
        logger.info("Socket closed for %s in %s", player_id, room_id)
        await manager.disconnect(room_id, player_id, websocket)

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Body, Depends, Response

from .. import checkin_logic
from ..config import Settings
from ..constants import SYMBOL_CATALOG, SYMBOLS
from ..dependencies import get_app_settings, get_channel, get_store
from ..errors import RoomNotFoundError
from ..propagation import StateChannel
from ..schemas import (
    CreateRoomRequest,
    CreateRoomResponse,
    JoinRoomRequest,
    JoinRoomResponse,
    LeaveRoomRequest,
    MutationResponse,
    RoomState,
    SelectSymbolRequest,
    SetAnonymousRequest,
    SymbolInfo,
)
from ..store import RoomStore

router = APIRouter(prefix="", tags=["rooms"])


@router.post("/rooms", response_model=CreateRoomResponse)
async def create_room(
    req: CreateRoomRequest = Body(default=CreateRoomRequest()),
    store: RoomStore = Depends(get_store),
):
    room_id = await checkin_logic.create_room(store, req.room_id)
    return CreateRoomResponse(room_id=room_id)


@router.post("/rooms/{room_id}/join", response_model=JoinRoomResponse)
async def join_room(
    room_id: str,
    req: JoinRoomRequest = Body(default=JoinRoomRequest()),
    store: RoomStore = Depends(get_store),
    channel: StateChannel = Depends(get_channel),
    settings: Settings = Depends(get_app_settings),
):
    participant_id, state = await checkin_logic.join_room(
        store, channel, room_id, req.name,
        participant_id=req.participant_id,
        default_name=settings.default_display_name,
    )
    return JoinRoomResponse(participant_id=participant_id, state=state)


@router.post("/rooms/{room_id}/select", response_model=MutationResponse)
async def select_symbol(
    room_id: str,
    req: SelectSymbolRequest,
    store: RoomStore = Depends(get_store),
    channel: StateChannel = Depends(get_channel),
):
    state = await checkin_logic.select_symbol(store, channel, room_id, req.participant_id, req.symbol)
    return MutationResponse(state=state)


@router.post("/rooms/{room_id}/end", response_model=MutationResponse)
async def end_round(
    room_id: str,
    store: RoomStore = Depends(get_store),
    channel: StateChannel = Depends(get_channel),
):
    state = await checkin_logic.end_round(store, channel, room_id)
    return MutationResponse(state=state)


@router.post("/rooms/{room_id}/anonymous", response_model=MutationResponse)
async def set_anonymous(
    room_id: str,
    req: SetAnonymousRequest,
    store: RoomStore = Depends(get_store),
    channel: StateChannel = Depends(get_channel),
):
    state = await checkin_logic.set_anonymous(store, channel, room_id, req.anonymous)
    return MutationResponse(state=state)


@router.post("/rooms/{room_id}/leave", response_model=MutationResponse)
async def leave_room(
    room_id: str,
    req: LeaveRoomRequest,
    store: RoomStore = Depends(get_store),
    channel: StateChannel = Depends(get_channel),
):
    state = await checkin_logic.leave_room(store, channel, room_id, req.participant_id)
    return MutationResponse(state=state)


@router.get("/rooms/{room_id}", response_model=RoomState)
async def get_room_state(
    room_id: str,
    response: Response,
    store: RoomStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    # Pollers must always see the latest applied mutation.
    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Poll-Interval"] = str(settings.poll_interval_seconds)
    state = checkin_logic.get_state(store, room_id)
    if state is None:
        raise RoomNotFoundError(room_id)
    return state


@router.get("/symbols", response_model=List[SymbolInfo])
async def list_symbols():
    return [SymbolInfo(key=key, **SYMBOL_CATALOG[key]) for key in SYMBOLS]

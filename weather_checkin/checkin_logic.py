"""Room mutations: create, join, select, end round, anonymity, leave.

This module implements the check-in rules while staying independent of any
transport. Every function takes the ``RoomStore`` and the ``StateChannel``
explicitly; the FastAPI routers import them and only translate HTTP or
websocket messages into calls.

Each mutation runs under the room's lock: apply, snapshot, publish. The
snapshot is built and published before the lock is released, so readers never
see a half-applied change and push subscribers receive snapshots in the order
they were applied.
"""
from __future__ import annotations

import logging
import random
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Tuple

from .constants import DEFAULT_DISPLAY_NAME, ROOM_ID_ALPHABET, ROOM_ID_LENGTH
from .errors import RoomNotFoundError, UnknownMessageError
from .propagation import StateChannel, Subscription
from .room import Room, normalize_name
from .schemas import RoomState
from .store import RoomStore, validate_identifier

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def generate_room_id(store: RoomStore) -> str:
    """Short lowercase base-36 id that is not in use yet."""
    while True:
        room_id = "".join(random.choices(ROOM_ID_ALPHABET, k=ROOM_ID_LENGTH))
        if room_id not in store:
            return room_id


def generate_participant_id() -> str:
    return uuid.uuid4().hex


def _require_room(store: RoomStore, room_id: str) -> Room:
    room = store.get(room_id)
    if room is None:
        raise RoomNotFoundError(room_id)
    return room


@asynccontextmanager
async def _locked_room(store: RoomStore, room_id: str) -> AsyncIterator[Room]:
    """Hold *room_id*'s lock; fail if the room was evicted while we waited."""
    room = _require_room(store, room_id)
    async with room.lock:
        if store.get(room_id) is not room:
            raise RoomNotFoundError(room_id)
        yield room


def _publish(channel: StateChannel, room: Room) -> RoomState:
    state = room.snapshot()
    channel.publish(room.room_id, state)
    return state


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def create_room(store: RoomStore, room_id: Optional[str] = None) -> str:
    """Make sure a room exists and return its id. ``None`` generates a fresh id."""
    if room_id is None:
        room_id = generate_room_id(store)
    store.get_or_create(room_id)
    return room_id


async def join_room(
    store: RoomStore,
    channel: StateChannel,
    room_id: str,
    name: Optional[str],
    participant_id: Optional[str] = None,
    default_name: str = DEFAULT_DISPLAY_NAME,
) -> Tuple[str, RoomState]:
    """Upsert a participant; the room is created on first reference.

    Joining again with the same token keeps the earlier selection and only
    refreshes the display name.
    """
    if participant_id is None:
        participant_id = generate_participant_id()
    validate_identifier("participant id", participant_id)
    while True:
        room = store.get_or_create(room_id)
        async with room.lock:
            # Evicted while waiting: start over on a fresh room.
            if store.get(room_id) is not room:
                continue
            participant = room.upsert_participant(participant_id, normalize_name(name, default_name))
            state = _publish(channel, room)
            break
    logger.info(
        f"{participant.name!r} joined room {room_id}",
        extra={"room_id": room_id, "participant_id": participant_id, "event": "join"},
    )
    return participant_id, state


async def select_symbol(
    store: RoomStore,
    channel: StateChannel,
    room_id: str,
    participant_id: str,
    symbol: Any,
) -> RoomState:
    async with _locked_room(store, room_id) as room:
        if not room.select(participant_id, symbol):
            logger.debug(
                f"Ignored selection in ended room {room_id}",
                extra={"room_id": room_id, "participant_id": participant_id},
            )
            return room.snapshot()
        return _publish(channel, room)


async def end_round(store: RoomStore, channel: StateChannel, room_id: str) -> RoomState:
    async with _locked_room(store, room_id) as room:
        if not room.end_round():
            return room.snapshot()
        logger.info(f"Round ended in room {room_id}", extra={"room_id": room_id, "event": "end_round"})
        return _publish(channel, room)


async def set_anonymous(
    store: RoomStore, channel: StateChannel, room_id: str, anonymous: bool,
) -> RoomState:
    async with _locked_room(store, room_id) as room:
        room.set_anonymous(anonymous)
        return _publish(channel, room)


async def leave_room(
    store: RoomStore, channel: StateChannel, room_id: str, participant_id: str,
) -> RoomState:
    async with _locked_room(store, room_id) as room:
        if not room.remove_participant(participant_id):
            return room.snapshot()
        logger.info(
            f"Participant left room {room_id}",
            extra={"room_id": room_id, "participant_id": participant_id, "event": "leave"},
        )
        return _publish(channel, room)


def get_state(store: RoomStore, room_id: str) -> Optional[RoomState]:
    """Current snapshot, or ``None`` for a room that was never created."""
    room = store.get(room_id)
    if room is None:
        return None
    # Snapshotting never awaits, so it cannot interleave with a mutation.
    return room.snapshot()


# ---------------------------------------------------------------------------
# WebSocket message handlers (single public entry point below)
# ---------------------------------------------------------------------------

async def handle_ws_message(
    store: RoomStore,
    channel: StateChannel,
    sub: Subscription,
    data: Any,
    default_name: str = DEFAULT_DISPLAY_NAME,
) -> None:
    msg_type = data.get("type") if isinstance(data, dict) else None
    if msg_type == "join":
        await join_room(
            store, channel, sub.room_id, data.get("name"),
            participant_id=sub.participant_id, default_name=default_name,
        )
        sub.joined = True
    elif msg_type == "select":
        await select_symbol(store, channel, sub.room_id, sub.participant_id, data.get("symbol"))
    elif msg_type == "end_round":
        await end_round(store, channel, sub.room_id)
    elif msg_type == "toggle_anonymous":
        await set_anonymous(store, channel, sub.room_id, bool(data.get("anonymous")))
    elif msg_type == "get_state":
        state = get_state(store, sub.room_id)
        sub.send({"type": "state", "data": state.model_dump(by_alias=True) if state else None})
    elif msg_type == "leave":
        await leave_room(store, channel, sub.room_id, sub.participant_id)
        sub.joined = False
    else:
        raise UnknownMessageError(msg_type)


async def handle_disconnect(store: RoomStore, channel: StateChannel, sub: Subscription) -> None:
    """Forget *sub*; remove its participant if no other live socket holds that identity."""
    channel.unsubscribe(sub)
    if not sub.joined or sub.room_id not in store:
        return
    still_connected = any(
        other.joined and other.participant_id == sub.participant_id
        for other in channel.subscriptions(sub.room_id)
    )
    if not still_connected:
        await leave_room(store, channel, sub.room_id, sub.participant_id)


__all__ = [
    "generate_room_id",
    "generate_participant_id",
    "create_room",
    "join_room",
    "select_symbol",
    "end_round",
    "set_anonymous",
    "leave_room",
    "get_state",
    "handle_ws_message",
    "handle_disconnect",
]

from __future__ import annotations

import json
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from ..checkin_logic import generate_participant_id, handle_disconnect, handle_ws_message
from ..config import Settings
from ..dependencies import get_app_settings, get_channel, get_store
from ..errors import CheckinError, InvalidIdentifierError
from ..propagation import StateChannel
from ..store import RoomStore, validate_identifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ws"])

# Close codes
PUSH_DISABLED = 4005
BAD_IDENTITY = 4000


@router.websocket("/ws/{room_id}")
async def websocket_endpoint(
    ws: WebSocket,
    room_id: str,
    participant_id: Optional[str] = Query(default=None, alias="participantId"),
    store: RoomStore = Depends(get_store),
    channel: StateChannel = Depends(get_channel),
    settings: Settings = Depends(get_app_settings),
):
    await ws.accept()
    if not channel.supports_push:
        await ws.close(code=PUSH_DISABLED)
        return
    if participant_id is None:
        participant_id = generate_participant_id()
    else:
        try:
            validate_identifier("participant id", participant_id)
        except InvalidIdentifierError:
            await ws.close(code=BAD_IDENTITY)
            return

    sub = channel.subscribe(room_id, ws, uuid.uuid4().hex, participant_id)
    sub.send({"type": "welcome", "data": {"roomId": room_id, "participantId": participant_id}})

    try:
        while True:
            text = await ws.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                data = None
            try:
                await handle_ws_message(store, channel, sub, data, settings.default_display_name)
            except CheckinError as exc:
                logger.warning(
                    f"Rejected websocket message in room {room_id}: {exc.message}",
                    extra={"room_id": room_id, "error_code": exc.code},
                )
                sub.send(exc.to_ws_event())
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.error(f"WebSocket error in room {room_id}", exc_info=True, extra={"room_id": room_id})
    finally:
        await handle_disconnect(store, channel, sub)

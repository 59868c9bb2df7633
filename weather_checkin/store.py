"""In-memory room storage.

One ``RoomStore`` is created per application and handed to everything that
needs it (``app.state.store``). Nothing else keeps rooms.
"""
from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional

from .constants import IDENTIFIER_PATTERN, SYMBOLS
from .errors import InvalidIdentifierError
from .room import Room

logger = logging.getLogger(__name__)


def validate_identifier(kind: str, value: object) -> str:
    """Return *value* if it is a well-formed room id / participant token."""
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.fullmatch(value):
        raise InvalidIdentifierError(kind, value)
    return value


class RoomStore:
    """Process-wide mapping room id -> ``Room``."""

    def __init__(self, symbols: Iterable[str] = SYMBOLS):
        self._symbols = tuple(symbols)
        self._rooms: Dict[str, Room] = {}

    # -------------------- Lifecycle -------------------- #

    def init(self) -> None:
        self._rooms.clear()
        logger.info("Room store initialised")

    def dispose(self) -> None:
        count = len(self._rooms)
        self._rooms.clear()
        logger.info(f"Room store disposed, dropped {count} room(s)")

    # -------------------- Lookup -------------------- #

    def get_or_create(self, room_id: str) -> Room:
        """Return the room for *room_id*, creating it on first reference.

        Repeated calls hand back the very same object.
        """
        validate_identifier("room id", room_id)
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id, symbols=self._symbols)
            self._rooms[room_id] = room
            logger.info(f"Room {room_id} created", extra={"room_id": room_id})
        return room

    def get(self, room_id: str) -> Optional[Room]:
        """Lookup only; never creates."""
        return self._rooms.get(room_id)

    def room_ids(self) -> List[str]:
        return list(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    # -------------------- Eviction -------------------- #

    def evict_older_than(self, horizon_seconds: float, now: Optional[float] = None) -> List[str]:
        """Drop rooms created more than *horizon_seconds* ago; return their ids."""
        now_ms = (now if now is not None else time.time()) * 1000
        cutoff = now_ms - horizon_seconds * 1000
        stale = [rid for rid, room in self._rooms.items() if room.created_at < cutoff]
        for rid in stale:
            self._rooms.pop(rid, None)
            logger.info(f"Room {rid} evicted", extra={"room_id": rid})
        return stale


__all__ = ["RoomStore", "validate_identifier"]

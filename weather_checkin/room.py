from __future__ import annotations

import asyncio
import time
from typing import Dict, Iterable, Optional

from .constants import NAME_MAX_LENGTH, SYMBOLS
from .errors import InvalidSymbolError, ParticipantNotFoundError
from .schemas import Participant, ParticipantView, RoomState
from .summary import summarize

# NOTE: ``Room`` holds plain state only. Locking discipline and publishing
# live in ``checkin_logic`` so the class stays easy to test in isolation.


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_name(name: Optional[str], default: str) -> str:
    """Strip and cap *name* at ``NAME_MAX_LENGTH``; blank names become *default*."""
    cleaned = str(name or "").strip()[:NAME_MAX_LENGTH]
    return cleaned or default[:NAME_MAX_LENGTH]


class Room:
    """Authoritative state of one check-in session."""

    def __init__(
        self,
        room_id: str,
        symbols: Iterable[str] = SYMBOLS,
        created_at: Optional[int] = None,
    ):
        self.room_id = room_id
        self.created_at: int = created_at if created_at is not None else now_ms()
        self.ended: bool = False
        self.anonymous: bool = False
        # Fixed for the room's lifetime.
        self.symbols: tuple = tuple(symbols)
        # participant_id -> Participant, in join order
        self.participants: Dict[str, Participant] = {}
        # Serialises every mutation of this room.
        self.lock = asyncio.Lock()

    # -------------------- Participant management -------------------- #

    def upsert_participant(self, participant_id: str, name: str) -> Participant:
        """Add *participant_id* or refresh its name, keeping any selection."""
        existing = self.participants.get(participant_id)
        if existing is not None:
            existing.name = name
            return existing
        participant = Participant(participant_id=participant_id, name=name)
        self.participants[participant_id] = participant
        return participant

    def remove_participant(self, participant_id: str) -> bool:
        return self.participants.pop(participant_id, None) is not None

    # -------------------- Round state -------------------- #

    def select(self, participant_id: str, symbol: str) -> bool:
        """Record *symbol* for *participant_id*.

        Returns ``False`` without touching anything once the round has
        ended: a late selection racing ``end_round`` is expected and is not
        an error.
        """
        if self.ended:
            return False
        if symbol not in self.symbols:
            raise InvalidSymbolError(self.room_id, symbol)
        participant = self.participants.get(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(self.room_id, participant_id)
        participant.symbol = symbol
        return True

    def end_round(self) -> bool:
        """Close the round. Returns ``True`` only on the first call."""
        if self.ended:
            return False
        self.ended = True
        return True

    def set_anonymous(self, anonymous: bool) -> None:
        self.anonymous = bool(anonymous)

    # -------------------- Snapshots -------------------- #

    def snapshot(self) -> RoomState:
        """Build the full client-visible state, summary recomputed."""
        return RoomState(
            room_id=self.room_id,
            created_at=self.created_at,
            ended=self.ended,
            anonymous=self.anonymous,
            symbols=list(self.symbols),
            participants=[
                ParticipantView(name=p.name, symbol=p.symbol)
                for p in self.participants.values()
            ],
            summary=summarize(self),
        )


__all__ = ["Room", "now_ms", "normalize_name"]

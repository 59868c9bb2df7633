"""Pydantic data schemas used across the check-in service.

This module centralises all models so that other packages can import
from a single location instead of sprinkling the definitions across
multiple files. Everything that goes over the wire is camelCase.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Runtime
# -----------------------------

class Participant(CamelModel):
    """Represents one checked-in person inside a room at runtime."""

    participant_id: str
    name: str
    symbol: Optional[str] = None  # unset until the first selection


class ParticipantView(CamelModel):
    """The public part of a participant; the token never leaves the server."""

    name: str
    symbol: Optional[str] = None


class RoomState(CamelModel):
    room_id: str
    created_at: int  # ms since epoch
    ended: bool
    anonymous: bool
    symbols: List[str]
    participants: List[ParticipantView]
    summary: Dict[str, int]


# -----------------------------
# REST request / response models
# -----------------------------

class CreateRoomRequest(CamelModel):
    room_id: Optional[str] = None


class CreateRoomResponse(CamelModel):
    room_id: str


class JoinRoomRequest(CamelModel):
    name: Optional[str] = None
    participant_id: Optional[str] = None


class JoinRoomResponse(CamelModel):
    ok: bool = True
    participant_id: str
    state: RoomState


class SelectSymbolRequest(CamelModel):
    participant_id: str
    symbol: str


class SetAnonymousRequest(CamelModel):
    anonymous: bool


class LeaveRoomRequest(CamelModel):
    participant_id: str


class MutationResponse(CamelModel):
    ok: bool = True
    state: RoomState


class SymbolInfo(CamelModel):
    key: str
    label: str
    emoji: str


__all__ = [
    "CamelModel",
    # runtime
    "Participant",
    "ParticipantView",
    "RoomState",
    # rest
    "CreateRoomRequest",
    "CreateRoomResponse",
    "JoinRoomRequest",
    "JoinRoomResponse",
    "SelectSymbolRequest",
    "SetAnonymousRequest",
    "LeaveRoomRequest",
    "MutationResponse",
    "SymbolInfo",
]

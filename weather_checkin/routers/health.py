from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..constants import SERVICE_VERSION
from ..dependencies import get_channel, get_store
from ..propagation import StateChannel
from ..store import RoomStore

router = APIRouter(prefix="", tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(
    store: RoomStore = Depends(get_store),
    channel: StateChannel = Depends(get_channel),
):
    """Liveness probe. Returns 200 whenever the process is up."""
    return {
        "status": "healthy",
        "service": "weather-checkin",
        "version": SERVICE_VERSION,
        "propagation": channel.mode,
        "rooms": len(store),
    }

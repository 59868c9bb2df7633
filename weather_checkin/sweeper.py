"""Periodic eviction of stale rooms, kept apart from the mutation path."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .store import RoomStore

logger = logging.getLogger(__name__)


class RoomSweeper:
    """Every *interval* seconds, evict rooms older than *horizon_seconds*."""

    def __init__(self, store: RoomStore, horizon_seconds: float, interval: float):
        self.store = store
        self.horizon_seconds = horizon_seconds
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.horizon_seconds <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run(), name="room-sweeper")
        logger.info(
            f"Room sweeper started (horizon={self.horizon_seconds:.0f}s, every {self.interval:.0f}s)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def sweep_once(self) -> list:
        evicted = self.store.evict_older_than(self.horizon_seconds)
        if evicted:
            logger.info(f"Evicted {len(evicted)} stale room(s)")
        return evicted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep_once()
            except Exception:
                logger.error("Room sweep failed", exc_info=True)


__all__ = ["RoomSweeper"]

"""State propagation: how a freshly applied room state reaches clients.

Two interchangeable implementations of ``StateChannel`` read the same
``RoomStore``:

* ``BroadcastChannel`` pushes every snapshot to the room's websocket
  subscribers. Snapshots are published while the room lock is held, so every
  subscriber sees them in apply order. Delivery runs in one sender task per
  socket behind a bounded queue; a slow socket loses its oldest pending
  snapshots, never the newest, and never stalls the mutation.
* ``PollingChannel`` publishes nothing. Clients fetch ``GET /rooms/{id}``
  every ``poll_interval_seconds``, so staleness is bounded by that interval.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

from .config import Settings
from .schemas import RoomState

logger = logging.getLogger(__name__)


class Subscription:
    """One websocket listening to one room."""

    def __init__(
        self,
        room_id: str,
        connection_id: str,
        participant_id: str,
        websocket: WebSocket,
        queue_size: int,
    ):
        self.room_id = room_id
        self.connection_id = connection_id
        # Identity this socket acts as; it becomes a participant on "join".
        self.participant_id = participant_id
        self.joined: bool = False
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.task: Optional[asyncio.Task] = None
        self.dropped: int = 0

    def send(self, message: Dict[str, Any]) -> None:
        """Queue *message* for this socket without waiting for delivery."""
        if self.queue.full():
            try:
                self.queue.get_nowait()
                self.dropped += 1
            except asyncio.QueueEmpty:
                pass
        self.queue.put_nowait(message)


class StateChannel(ABC):
    mode: str = ""
    supports_push: bool = False

    @abstractmethod
    def publish(self, room_id: str, state: RoomState) -> int:
        """Hand *state* to everyone following *room_id*; return the recipient count."""

    def subscribe(
        self, room_id: str, websocket: WebSocket, connection_id: str, participant_id: str,
    ) -> Subscription:
        raise RuntimeError(f"{self.mode} channel does not accept subscriptions")

    def unsubscribe(self, subscription: Subscription) -> None:
        return None

    def subscriptions(self, room_id: str) -> List[Subscription]:
        return []

    def subscriber_count(self, room_id: str) -> int:
        return len(self.subscriptions(room_id))

    async def close(self) -> None:
        return None


class BroadcastChannel(StateChannel):
    mode = "push"
    supports_push = True

    def __init__(self, queue_size: int = 32):
        self.queue_size = queue_size
        # room_id -> connection_id -> Subscription
        self._rooms: Dict[str, Dict[str, Subscription]] = {}

    def subscribe(
        self, room_id: str, websocket: WebSocket, connection_id: str, participant_id: str,
    ) -> Subscription:
        sub = Subscription(room_id, connection_id, participant_id, websocket, self.queue_size)
        self._rooms.setdefault(room_id, {})[connection_id] = sub
        sub.task = asyncio.create_task(self._pump(sub), name=f"ws:{room_id}:{connection_id}")
        logger.debug(
            f"Connection {connection_id} subscribed to room {room_id}",
            extra={"room_id": room_id},
        )
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        subs = self._rooms.get(subscription.room_id)
        if subs is not None:
            subs.pop(subscription.connection_id, None)
            if not subs:
                self._rooms.pop(subscription.room_id, None)
        task = subscription.task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def subscriptions(self, room_id: str) -> List[Subscription]:
        return list(self._rooms.get(room_id, {}).values())

    def publish(self, room_id: str, state: RoomState) -> int:
        subs = self.subscriptions(room_id)
        if not subs:
            return 0
        message = {"type": "state", "data": state.model_dump(by_alias=True)}
        for sub in subs:
            sub.send(message)
        return len(subs)

    async def _pump(self, sub: Subscription) -> None:
        """Drain *sub*'s queue into its websocket until cancelled or broken."""
        try:
            while True:
                message = await sub.queue.get()
                await sub.websocket.send_json(message)
        except Exception as exc:
            # Client went away mid-send; the room carries on without it.
            logger.warning(
                f"Dropping subscriber {sub.connection_id} of room {sub.room_id}: {exc}",
                extra={"room_id": sub.room_id},
            )
            self.unsubscribe(sub)

    async def close(self) -> None:
        tasks = []
        for subs in list(self._rooms.values()):
            for sub in list(subs.values()):
                if sub.task is not None:
                    sub.task.cancel()
                    tasks.append(sub.task)
        self._rooms.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class PollingChannel(StateChannel):
    mode = "pull"
    supports_push = False

    def __init__(self, poll_interval: float = 2.0):
        self.poll_interval = poll_interval

    def publish(self, room_id: str, state: RoomState) -> int:
        # Pollers read the store directly on their next tick.
        return 0


def build_channel(settings: Settings) -> StateChannel:
    if settings.propagation_mode == "pull":
        return PollingChannel(poll_interval=settings.poll_interval_seconds)
    return BroadcastChannel(queue_size=settings.send_queue_size)


__all__ = [
    "Subscription",
    "StateChannel",
    "BroadcastChannel",
    "PollingChannel",
    "build_channel",
]

"""Polling client for the check-in API.

``CheckinClient`` is the collaborator side of the room contract: it remembers
which room it is in and who it is, issues mutations over HTTP and feeds every
polled snapshot to the handlers registered with ``on_state``. The participant
token is generated once and kept in the optional session file, so a restarted
client comes back as the same participant.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

StateHandler = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class CheckinClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        poll_interval: float = 2.0,
        session_path: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.poll_interval = poll_interval
        self.session_path = session_path
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=poll_interval * 5)
        self._owns_http = http_client is None
        self._handlers: List[StateHandler] = []
        self._poll_task: Optional[asyncio.Task] = None

        self.room_id: Optional[str] = None
        self.user_name: Optional[str] = None
        self.participant_id: str = uuid.uuid4().hex
        self._load_session()

    # -------------------- Session -------------------- #

    def _load_session(self) -> None:
        if not self.session_path or not os.path.exists(self.session_path):
            return
        try:
            with open(self.session_path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning(f"Failed to load session from {self.session_path}: {exc}")
            return
        self.room_id = data.get("roomId") or None
        self.user_name = data.get("userName") or None
        self.participant_id = data.get("participantId") or self.participant_id
        logger.debug(f"Loaded session: room={self.room_id} user={self.user_name}")

    def _save_session(self) -> None:
        if not self.session_path:
            return
        data = {
            "roomId": self.room_id,
            "userName": self.user_name,
            "participantId": self.participant_id,
        }
        try:
            with open(self.session_path, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
        except OSError as exc:
            logger.warning(f"Failed to save session to {self.session_path}: {exc}")

    # -------------------- HTTP -------------------- #

    async def _call(self, method: str, path: str, body: Optional[dict] = None) -> Dict[str, Any]:
        response = await self._http.request(method, path, json=body)
        response.raise_for_status()
        return response.json()

    # -------------------- Subscriptions -------------------- #

    async def on_state(self, handler: StateHandler) -> None:
        """Register *handler*; it receives every snapshot the client fetches.

        When the client is already in a room (for instance restored from the
        session file) the current snapshot is fetched and handed to *handler*
        right away.
        """
        self._handlers.append(handler)
        if not self.room_id:
            return
        try:
            state = await self.get_state()
        except httpx.HTTPError as exc:
            logger.warning(f"Failed to fetch initial state for {self.room_id}: {exc}")
            return
        if state is not None:
            await self._call_handler(handler, state)

    @staticmethod
    async def _call_handler(handler: StateHandler, state: Dict[str, Any]) -> None:
        result = handler(state)
        if asyncio.iscoroutine(result):
            await result

    async def _notify(self, state: Dict[str, Any]) -> None:
        for handler in list(self._handlers):
            await self._call_handler(handler, state)

    def start_polling(self) -> None:
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop(), name="checkin-poll")

    async def stop_polling(self) -> None:
        if self._poll_task is None:
            return
        self._poll_task.cancel()
        try:
            await self._poll_task
        except asyncio.CancelledError:
            pass
        self._poll_task = None

    async def poll_once(self) -> Optional[Dict[str, Any]]:
        state = await self.get_state()
        if state is not None:
            await self._notify(state)
        return state

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                # Dropped poll; the next tick re-fetches.
                logger.warning("Polling error", exc_info=True)
            await asyncio.sleep(self.poll_interval)

    # -------------------- Room operations -------------------- #

    async def create_room(self, room_id: Optional[str] = None) -> str:
        body = {"roomId": room_id} if room_id else {}
        result = await self._call("POST", "/rooms", body)
        self.room_id = result["roomId"]
        self._save_session()
        return self.room_id

    async def join_room(self, room_id: str, name: str) -> bool:
        try:
            result = await self._call(
                "POST", f"/rooms/{room_id}/join",
                {"name": name, "participantId": self.participant_id},
            )
        except httpx.HTTPError as exc:
            logger.error(f"Failed to join room {room_id}: {exc}")
            return False
        self.room_id = room_id
        self.user_name = name
        self.participant_id = result["participantId"]
        self._save_session()
        await self._notify(result["state"])
        return True

    async def get_state(self) -> Optional[Dict[str, Any]]:
        """Current snapshot of the joined room, or ``None`` if there is none."""
        if not self.room_id:
            return None
        response = await self._http.get(f"/rooms/{self.room_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def _mutate(self, action: str, body: Optional[dict] = None) -> Optional[Dict[str, Any]]:
        if not self.room_id:
            logger.debug(f"Cannot {action}: no current room")
            return None
        try:
            result = await self._call("POST", f"/rooms/{self.room_id}/{action}", body)
        except httpx.HTTPError as exc:
            logger.error(f"Failed to {action} in room {self.room_id}: {exc}")
            return None
        await self._notify(result["state"])
        return result["state"]

    async def select(self, symbol: str) -> Optional[Dict[str, Any]]:
        if not self.user_name:
            logger.debug("Cannot select: not joined")
            return None
        return await self._mutate("select", {"participantId": self.participant_id, "symbol": symbol})

    async def end_round(self) -> Optional[Dict[str, Any]]:
        return await self._mutate("end")

    async def set_anonymous(self, anonymous: bool) -> Optional[Dict[str, Any]]:
        return await self._mutate("anonymous", {"anonymous": anonymous})

    async def leave(self) -> Optional[Dict[str, Any]]:
        state = await self._mutate("leave", {"participantId": self.participant_id})
        self.user_name = None
        self._save_session()
        return state

    async def aclose(self) -> None:
        await self.stop_polling()
        self._handlers.clear()
        if self._owns_http:
            await self._http.aclose()


__all__ = ["CheckinClient", "StateHandler"]

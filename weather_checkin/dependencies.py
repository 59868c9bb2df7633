"""FastAPI dependency helpers.

The store, the channel and the settings hang off ``app.state``; routes ask
for them here instead of importing module globals. ``HTTPConnection`` makes
the same helpers work for HTTP and websocket routes.
"""
from __future__ import annotations

from starlette.requests import HTTPConnection

from .config import Settings
from .propagation import StateChannel
from .store import RoomStore


def get_store(conn: HTTPConnection) -> RoomStore:
    return conn.app.state.store


def get_channel(conn: HTTPConnection) -> StateChannel:
    return conn.app.state.channel


def get_app_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


__all__ = ["get_store", "get_channel", "get_app_settings"]

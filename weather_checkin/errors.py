"""Typed, categorised exceptions for every check-in failure mode.

Every error carries a code, a category and a severity. ``to_response()``
produces the REST envelope and ``to_ws_event()`` the WebSocket one, so
both transports report the same failure the same way.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Where the error happened, for logs and for the client."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    room_id: Optional[str] = None
    participant_id: Optional[str] = None


class CheckinError(Exception):
    """Base exception for all check-in errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[ErrorContext] = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "roomId": self.context.room_id,
                },
            }
        }

    def to_ws_event(self) -> dict:
        return {
            "type": "error",
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
            },
        }


# ─── Not found (404) ────────────────────────────────────────────

class RoomNotFoundError(CheckinError):
    def __init__(self, room_id: str):
        super().__init__(
            f"Room '{room_id}' not found",
            "ROOM_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, ErrorContext(room_id=room_id), 404,
        )


class ParticipantNotFoundError(CheckinError):
    def __init__(self, room_id: str, participant_id: str):
        super().__init__(
            "Participant has not joined this room",
            "PARTICIPANT_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING,
            ErrorContext(room_id=room_id, participant_id=participant_id), 404,
        )


# ─── Validation (400) ───────────────────────────────────────────

class InvalidSymbolError(CheckinError):
    def __init__(self, room_id: str, symbol: object):
        super().__init__(
            f"Unknown symbol {symbol!r}",
            "INVALID_SYMBOL", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, ErrorContext(room_id=room_id), 400,
        )
        self.symbol = symbol


class InvalidIdentifierError(CheckinError):
    """Room id or participant token is empty, too long or has odd characters."""

    def __init__(self, kind: str, value: object):
        super().__init__(
            f"Invalid {kind}: expected 1-64 characters of [A-Za-z0-9_-]",
            "INVALID_IDENTIFIER", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, None, 400,
        )
        self.kind = kind
        self.value = value


class UnknownMessageError(CheckinError):
    def __init__(self, msg_type: object):
        super().__init__(
            f"Unknown message type {msg_type!r}",
            "UNKNOWN_MESSAGE", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, None, 400,
        )


__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "CheckinError",
    "RoomNotFoundError",
    "ParticipantNotFoundError",
    "InvalidSymbolError",
    "InvalidIdentifierError",
    "UnknownMessageError",
]

"""Per-symbol selection counts, always derived from the participants."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from .room import Room


def summarize(room: "Room") -> Dict[str, int]:
    """Return ``{symbol: count}`` for every symbol of *room*, in catalog order.

    Participants without a selection count towards no bucket, so the total
    is at most the number of participants.
    """
    counts: Dict[str, int] = {sym: 0 for sym in room.symbols}
    for participant in room.participants.values():
        if participant.symbol:
            counts[participant.symbol] = counts.get(participant.symbol, 0) + 1
    return counts


__all__ = ["summarize"]

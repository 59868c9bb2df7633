import re

SERVICE_VERSION = "1.0.0"

# Stable display order of the weather symbols. Rooms copy this at creation.
SYMBOLS: tuple[str, ...] = ("sun", "partly", "cloud", "rain", "storm")

# Human-facing catalog served to the UI collaborator.
SYMBOL_CATALOG: dict[str, dict[str, str]] = {
    "sun": {"label": "Sol", "emoji": "☀️"},
    "partly": {"label": "Halvsol", "emoji": "🌤️"},
    "cloud": {"label": "Moln", "emoji": "☁️"},
    "rain": {"label": "Regn", "emoji": "🌧️"},
    "storm": {"label": "Åska", "emoji": "⛈️"},
}

NAME_MAX_LENGTH = 40
DEFAULT_DISPLAY_NAME = "Gäst"

# Generated room ids are short lowercase base-36 strings.
ROOM_ID_LENGTH = 6
ROOM_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

# Room ids and participant tokens share one accepted shape.
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")

__all__ = [
    "SERVICE_VERSION",
    "SYMBOLS",
    "SYMBOL_CATALOG",
    "NAME_MAX_LENGTH",
    "DEFAULT_DISPLAY_NAME",
    "ROOM_ID_LENGTH",
    "ROOM_ID_ALPHABET",
    "IDENTIFIER_PATTERN",
]

"""Environment-driven settings via pydantic-settings.

All knobs read ``CHECKIN_*`` variables (or a ``.env`` file). ``get_settings()``
is cached, so there is one instance per process unless a test builds its own
``Settings`` and hands it to ``create_app``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_DISPLAY_NAME


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CHECKIN_", env_file=".env", case_sensitive=False,
    )

    # API
    cors_origins: List[str] = ["*"]
    static_dir: Optional[str] = None

    # Propagation: "push" broadcasts over websockets, "pull" relies on polling
    propagation_mode: Literal["push", "pull"] = "push"
    poll_interval_seconds: float = Field(default=2.0, gt=0)
    send_queue_size: int = Field(default=32, ge=1)

    # Rooms
    default_display_name: str = DEFAULT_DISPLAY_NAME
    room_ttl_hours: float = Field(default=24.0, ge=0)  # 0 disables the sweep
    sweep_interval_seconds: float = Field(default=300.0, gt=0)

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]

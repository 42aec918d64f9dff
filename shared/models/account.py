"""Data models for linked provider accounts (Twitch channels, Discord guilds)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class Platform(StrEnum):
    """Identity providers an account can be linked through."""

    TWITCH = "twitch"
    DISCORD = "discord"

    @property
    def table(self) -> str:
        """Table holding the linked accounts of this platform."""
        return "channels" if self is Platform.TWITCH else "guilds"


@dataclass
class LinkedAccount:
    """A provider identity bound to its stored OAuth credentials.

    ``external_id`` is the Twitch user id for channels and the Discord
    guild id for guilds.
    """

    external_id: str
    username: str
    access_token: str
    refresh_token: str
    enabled: bool = True
    registered_at: datetime | None = None
    last_refresh: datetime | None = None

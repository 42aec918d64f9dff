"""OAuth state (anti-CSRF nonce) model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class OAuthState:
    value: str
    created_at: datetime

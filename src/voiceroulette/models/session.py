"""Session token models.

A session token is the only credential the browser page ever holds. It is
bound to the guild it was issued in and the Discord user who ran /roulette.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TokenScope(BaseModel):
    """The only resource a token may read."""

    model_config = ConfigDict(frozen=True)

    guild_id: str
    issuing_user_id: str


class SessionToken(BaseModel):
    """An issued token. Read-only after issuance."""

    model_config = ConfigDict(frozen=True)

    value: str
    scope: TokenScope
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    @property
    def preview(self) -> str:
        """Short prefix that is safe to log."""
        return f"{self.value[:8]}..."

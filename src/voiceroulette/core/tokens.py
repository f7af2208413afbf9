"""Session token store — issuance, validation, and expiry sweep.

Tokens live only in process memory. The store is created empty by the app
lifespan, handed to the HTTP validator and the Discord bot as a dependency,
and cleared on shutdown.

Expiry is always checked against the clock, so a token that has passed
``expires_at`` is rejected even if the sweep has not removed it yet.
"""

from __future__ import annotations

import logging
import secrets
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from voiceroulette.core.errors import Unauthorized, UnauthorizedReason
from voiceroulette.models.session import SessionToken, TokenScope

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits, hex encoded to 64 chars
DEFAULT_TTL = timedelta(hours=1)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def generate_token_value() -> str:
    """Generate an unguessable token from the OS CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


class TokenStore:
    """Process-wide map of token value → SessionToken.

    Usage:
        store = TokenStore(ttl=timedelta(hours=1))
        token = store.issue(TokenScope(guild_id="1", issuing_user_id="2"))
        scope = store.validate(token.value)   # raises Unauthorized
        removed = store.sweep()
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock = utc_now) -> None:
        self._ttl = ttl
        self._clock = clock
        self._tokens: dict[str, SessionToken] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, scope: TokenScope) -> SessionToken:
        """Create and store a new token bound to ``scope``."""
        now = self._clock()
        token = SessionToken(
            value=generate_token_value(),
            scope=scope,
            issued_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._tokens[token.value] = token
        logger.info(
            "token_issued token=%s guild=%s user=%s expires_at=%s",
            token.preview,
            scope.guild_id,
            scope.issuing_user_id,
            token.expires_at.isoformat(),
        )
        return token

    def validate(self, value: str | None) -> TokenScope:
        """Return the scope bound to ``value`` or raise Unauthorized.

        An expired token is dropped from the store on the way out.
        """
        if not value:
            raise Unauthorized(UnauthorizedReason.MISSING)

        now = self._clock()
        with self._lock:
            token = self._tokens.get(value)
            if token is None:
                raise Unauthorized(UnauthorizedReason.INVALID)
            if token.is_expired(now):
                del self._tokens[value]
                expired = True
            else:
                expired = False

        if expired:
            logger.info("token_expired_on_use token=%s", token.preview)
            raise Unauthorized(UnauthorizedReason.EXPIRED)
        return token.scope

    def sweep(self) -> int:
        """Remove every token whose expiry has passed. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [value for value, token in self._tokens.items() if token.is_expired(now)]
            for value in expired:
                del self._tokens[value]
        for value in expired:
            logger.info("token_swept token=%s...", value[:8])
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, value: object) -> bool:
        with self._lock:
            return value in self._tokens

"""Typed failures for the roulette core.

Every failure the core can produce is one of a closed set of kinds.  Callers
(the HTTP layer, the Discord bot) switch on ``exc.kind`` and, for
``Unauthorized``, on ``exc.reason`` — never on message text.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    UNAUTHORIZED = "unauthorized"
    INVALID_COUNT = "invalid_count"
    EMPTY_ROSTER = "empty_roster"
    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


class UnauthorizedReason(StrEnum):
    MISSING = "missing"
    INVALID = "invalid"
    EXPIRED = "expired"


class RouletteError(Exception):
    """Base class for all core failures. ``message`` is safe to show to end users."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(RouletteError):
    kind = ErrorKind.UNAUTHORIZED

    _MESSAGES = {
        UnauthorizedReason.MISSING: "An access token is required.",
        UnauthorizedReason.INVALID: "This access token is not valid.",
        UnauthorizedReason.EXPIRED: (
            "This roulette link has expired. Run /roulette in Discord to get a new one."
        ),
    }

    def __init__(self, reason: UnauthorizedReason) -> None:
        super().__init__(self._MESSAGES[reason])
        self.reason = reason


class InvalidCount(RouletteError):
    kind = ErrorKind.INVALID_COUNT

    def __init__(self, count: object, total: int) -> None:
        super().__init__(f"Choose between 1 and {total} winners.")
        self.count = count
        self.total = total


class EmptyRoster(RouletteError):
    kind = ErrorKind.EMPTY_ROSTER

    def __init__(self) -> None:
        super().__init__("Nobody is in this voice channel.")


class NotFound(RouletteError):
    """The guild or channel does not exist (or the bot cannot see it)."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, resource_id: str = "") -> None:
        super().__init__(
            f"{resource.capitalize()} not found. "
            "Check that the bot is still in the server and the channel still exists."
        )
        self.resource = resource
        self.resource_id = resource_id


class UpstreamUnavailable(RouletteError):
    """The Discord connection is down or not ready yet."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __init__(self, detail: str = "") -> None:
        super().__init__("Discord is not reachable right now. Please try again in a moment.")
        self.detail = detail

"""Selection engine — fair random draw of winners from a roster snapshot.

Pure and synchronous. The random source is injectable so tests can seed it
and assert exact permutations; production uses ``secrets.SystemRandom``.
"""

from __future__ import annotations

import secrets
from collections.abc import Sequence
from typing import Protocol, TypeGuard, TypeVar

from voiceroulette.core.errors import EmptyRoster, InvalidCount
from voiceroulette.models.roster import Member

T = TypeVar("T")


class RandomSource(Protocol):
    """The slice of ``random.Random`` the engine needs."""

    def randint(self, a: int, b: int) -> int: ...


def default_random() -> RandomSource:
    return secrets.SystemRandom()


def validate_count(count: object, total: int) -> TypeGuard[int]:
    """True when ``count`` is an integer in ``[1, total]``.

    Booleans and floats are rejected, including integral floats and NaN.
    """
    if isinstance(count, bool) or not isinstance(count, int):
        return False
    return 1 <= count <= total


def shuffle(items: Sequence[T], rng: RandomSource) -> list[T]:
    """Fisher–Yates shuffle into a new list.

    For each position ``i`` from the top down, draws a uniform ``j`` in
    ``[0, i]`` and swaps — every one of the ``n!`` orderings is equally likely.
    """
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def select_members(
    members: Sequence[Member],
    count: object,
    rng: RandomSource | None = None,
) -> list[Member]:
    """Draw ``count`` distinct winners from ``members``, in draw order.

    Raises InvalidCount before any randomness is consumed, and EmptyRoster for
    an empty pool (checked separately because callers may skip validate_count).
    """
    if not validate_count(count, len(members)):
        raise InvalidCount(count, len(members))
    if not members:
        raise EmptyRoster()

    shuffled = shuffle(members, rng if rng is not None else default_random())
    return shuffled[:count]


"""Tests for the selection engine: validation, determinism, and uniformity."""

from __future__ import annotations

import math
import random
from collections import Counter

import pytest
from fakes import ErroringRandom, ScriptedRandom, make_members

from voiceroulette.core.errors import EmptyRoster, ErrorKind, InvalidCount
from voiceroulette.core.selection import select_members, shuffle, validate_count
from voiceroulette.models.roster import Member


class TestValidateCount:
    @pytest.mark.parametrize("count", [1, 2, 4])
    def test_in_range(self, count: int) -> None:
        assert validate_count(count, 4)

    @pytest.mark.parametrize(
        "count",
        [0, -1, 5, 2.0, 2.5, math.nan, math.inf, True, False, "2", None],
    )
    def test_rejected(self, count: object) -> None:
        assert not validate_count(count, 4)

    def test_empty_roster_rejects_everything(self) -> None:
        assert not validate_count(1, 0)


class TestSelectMembers:
    def test_winners_are_distinct_members(self, members: list[Member]) -> None:
        winners = select_members(members, 3, random.Random(1))
        assert len(winners) == 3
        assert len({w.id for w in winners}) == 3
        assert all(w in members for w in winners)

    def test_select_all(self, members: list[Member]) -> None:
        winners = select_members(members, 4, random.Random(2))
        assert sorted(w.id for w in winners) == sorted(m.id for m in members)

    def test_single_member(self) -> None:
        solo = make_members("Alice")
        assert select_members(solo, 1, random.Random(3)) == solo

    @pytest.mark.parametrize("count", [0, 5, 2.5, math.nan, True, -3])
    def test_invalid_count_consumes_no_randomness(
        self, members: list[Member], count: object
    ) -> None:
        with pytest.raises(InvalidCount) as exc_info:
            select_members(members, count, ErroringRandom())
        assert exc_info.value.kind == ErrorKind.INVALID_COUNT
        assert exc_info.value.total == 4

    def test_empty_roster_fails_before_randomness(self) -> None:
        with pytest.raises((InvalidCount, EmptyRoster)):
            select_members([], 1, ErroringRandom())

    def test_input_is_not_mutated(self, members: list[Member]) -> None:
        before = list(members)
        select_members(members, 2, random.Random(4))
        assert members == before

    def test_same_seed_same_winners(self, members: list[Member]) -> None:
        first = select_members(members, 2, random.Random(99))
        second = select_members(members, 2, random.Random(99))
        assert first == second

    def test_scripted_draws_give_exact_order(self, members: list[Member]) -> None:
        """Draws 1, 1, 0 shuffle [Alice, Bob, Carol, Dave] into [Carol, Alice, Dave, Bob]."""
        rng = ScriptedRandom([1, 1, 0])
        winners = select_members(members, 2, rng)
        assert [w.display_name for w in winners] == ["Carol", "Alice"]
        assert rng.calls == [(0, 3), (0, 2), (0, 1)]

    def test_default_random_source(self, members: list[Member]) -> None:
        winners = select_members(members, 2)
        assert len(winners) == 2


class TestShuffle:
    def test_shuffle_is_a_permutation(self) -> None:
        items = list(range(10))
        result = shuffle(items, random.Random(5))
        assert sorted(result) == items

    def test_one_draw_per_position(self) -> None:
        rng = ScriptedRandom()
        shuffle(list(range(6)), rng)
        assert rng.calls == [(0, 5), (0, 4), (0, 3), (0, 2), (0, 1)]

    def test_all_permutations_equally_likely(self) -> None:
        """Chi-square over the 120 orderings of five members."""
        roster = make_members("A", "B", "C", "D", "E")
        rng = random.Random(20240601)
        trials = 60_000
        counts = Counter(
            tuple(m.id for m in select_members(roster, 5, rng)) for _ in range(trials)
        )

        assert len(counts) == 120
        expected = trials / 120
        chi_square = sum((observed - expected) ** 2 / expected for observed in counts.values())
        # 119 degrees of freedom; the 99.9th percentile is about 173
        assert chi_square < 200

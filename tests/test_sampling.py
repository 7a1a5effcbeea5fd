"""Tests for weighted random primitives.

Invariants:
1. weighted_choice frequencies converge to weight / total
2. Sampling without replacement never duplicates and returns exactly
   `count` items, or nothing
"""

import random
from collections import Counter

import pytest

from earshot.core.sampling import (
    random_element,
    weighted_choice,
    weighted_sample_without_replacement,
)


class FixedDraw:
    """Random source whose random() always returns the same value."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value

    def randrange(self, n: int) -> int:
        return int(self.value * n)


class TestWeightedChoice:
    """Tests for weighted categorical draws."""

    def test_frequencies_match_weights(self, rng):
        """10k+ draws land within tolerance of weight / total."""
        weights = {"a": 1, "b": 2, "c": 7}
        n = 20_000
        counts = Counter(weighted_choice(weights, rng) for _ in range(n))
        for key, weight in weights.items():
            assert counts[key] / n == pytest.approx(weight / 10, abs=0.02)

    def test_zero_weight_key_never_drawn(self, rng):
        weights = {"never": 0, "always": 5}
        assert {weighted_choice(weights, rng) for _ in range(1_000)} == {"always"}

    def test_all_zero_weights_are_uniform(self, rng):
        weights = {"a": 0, "b": 0}
        counts = Counter(weighted_choice(weights, rng) for _ in range(10_000))
        assert counts["a"] / 10_000 == pytest.approx(0.5, abs=0.03)

    def test_single_key(self, rng):
        assert weighted_choice({"only": 3}, rng) == "only"

    def test_draw_at_boundary_selects_first_covering_key(self):
        """A draw equal to the cumulative mass selects that key."""
        assert weighted_choice({"a": 1, "b": 1}, FixedDraw(0.5)) == "a"
        assert weighted_choice({"a": 1, "b": 1}, FixedDraw(0.51)) == "b"

    def test_drift_falls_back_to_first_key(self):
        """If cumulative mass never reaches the draw, the first key wins."""
        weights = {"a": 0.1, "b": 0.1, "c": 0.1}
        assert weighted_choice(weights, FixedDraw(1.5)) == "a"

    def test_empty_weights_raise(self, rng):
        with pytest.raises(ValueError):
            weighted_choice({}, rng)


class TestWeightedSampleWithoutReplacement:
    """Tests for distinct weighted sampling."""

    def test_returns_exactly_count_distinct_items(self, rng):
        items = list("abcdef")
        weights = [1, 2, 3, 4, 5, 6]
        for count in range(len(items) + 1):
            for _ in range(50):
                result = weighted_sample_without_replacement(items, weights, count, rng)
                assert len(result) == count
                assert len(set(result)) == count
                assert set(result) <= set(items)

    def test_count_larger_than_pool_returns_empty(self, rng):
        assert weighted_sample_without_replacement(["a", "b"], [1, 1], 3, rng) == []

    def test_weight_count_mismatch_returns_empty(self, rng):
        assert weighted_sample_without_replacement(["a", "b"], [1], 1, rng) == []

    def test_insufficient_positive_weight_returns_empty(self, rng):
        """Only one item carries weight, so two distinct draws are impossible."""
        assert weighted_sample_without_replacement(["a", "b"], [1, 0], 2, rng) == []

    def test_zero_weight_item_not_drawn(self, rng):
        for _ in range(500):
            result = weighted_sample_without_replacement(["a", "b", "c"], [0, 1, 1], 2, rng)
            assert sorted(result) == ["b", "c"]

    def test_does_not_mutate_inputs(self, rng):
        items = ["a", "b", "c"]
        weights = [1.0, 2.0, 3.0]
        weighted_sample_without_replacement(items, weights, 3, rng)
        assert items == ["a", "b", "c"]
        assert weights == [1.0, 2.0, 3.0]

    def test_first_draw_follows_weights(self, rng):
        items = ["light", "heavy"]
        weights = [1, 3]
        n = 10_000
        firsts = Counter(
            weighted_sample_without_replacement(items, weights, 1, rng)[0] for _ in range(n)
        )
        assert firsts["heavy"] / n == pytest.approx(0.75, abs=0.03)


class TestRandomElement:
    """Tests for uniform element picks."""

    def test_empty_returns_none(self, rng):
        assert random_element([], rng) is None

    def test_covers_all_items(self):
        seeded = random.Random(7)
        seen = {random_element(["x", "y", "z"], seeded) for _ in range(200)}
        assert seen == {"x", "y", "z"}

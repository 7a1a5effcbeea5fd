"""Weighted random primitives.

All draws take an explicit random source so tests can use a seeded
random.Random. These are not cryptographically secure and do not need
to be; token identifiers are minted separately with `secrets`.
"""

from __future__ import annotations

import random
from typing import Hashable, Mapping, Sequence, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


def weighted_choice(weights: Mapping[K, float], rng: random.Random) -> K:
    """Pick one key with probability weight / total.

    A single uniform draw in [0, 1) is compared against the running
    cumulative probability; the first key whose cumulative mass reaches
    the draw wins. If float drift leaves nothing selected, the first key
    is returned. All-zero weights are treated as uniform.

    Raises:
        ValueError: If weights is empty.
    """
    if not weights:
        raise ValueError("weighted_choice requires at least one key")

    keys = list(weights)
    total = sum(weights[k] for k in keys)
    if total <= 0:
        probabilities = [1 / len(keys)] * len(keys)
    else:
        probabilities = [weights[k] / total for k in keys]

    draw = rng.random()
    cumulative = 0.0
    for key, probability in zip(keys, probabilities):
        cumulative += probability
        if probability > 0 and draw <= cumulative:
            return key
    return keys[0]


def weighted_sample_without_replacement(
    items: Sequence[T],
    weights: Sequence[float],
    count: int,
    rng: random.Random,
) -> list[T]:
    """Draw `count` distinct items, each draw weighted over what remains.

    Chosen items are removed by swapping them with the last active item
    and shrinking the active window. Returns [] rather than a partial
    result when the pool is too small, the weights do not line up with
    the items, or the remaining weight runs out.
    """
    if count > len(items) or len(weights) != len(items):
        return []

    pool = list(items)
    pool_weights = list(weights)
    active = len(pool)
    result: list[T] = []

    for _ in range(count):
        total = sum(pool_weights[:active])
        if total <= 0:
            return []
        remaining = rng.random() * total
        # Float drift fallback: last item that still carries weight
        chosen = max(j for j in range(active) if pool_weights[j] > 0)
        for j in range(active):
            remaining -= pool_weights[j]
            if remaining <= 0 and pool_weights[j] > 0:
                chosen = j
                break
        result.append(pool[chosen])
        last = active - 1
        pool[chosen], pool[last] = pool[last], pool[chosen]
        pool_weights[chosen], pool_weights[last] = pool_weights[last], pool_weights[chosen]
        active -= 1

    return result


def random_element(items: Sequence[T], rng: random.Random) -> T | None:
    """Uniform pick, or None for an empty sequence."""
    if not items:
        return None
    return items[rng.randrange(len(items))]

"""Pairing, transition and round-mode draws.

Placebo is not a pairing type here: it is a probability gate applied
inside the same-recording path (see candidates.py).
"""

from __future__ import annotations

import random
from typing import Iterable, Mapping

from earshot.core.sampling import weighted_choice
from earshot.models.domain import (
    DIFFERENT_RECORDING_TRANSITIONS,
    DRAWABLE_ROUND_MODES,
    PAIRING_TYPES,
    SAME_RECORDING_TRANSITIONS,
    PairingType,
    RoundMode,
    TransitionMode,
)

DEFAULT_ROUND_MODE: RoundMode = "mixtape"


def _filter_pool(pool: tuple[str, ...], enabled: Iterable[str] | None) -> tuple[str, ...]:
    """Restrict a pool to enabled names; an empty result means the full pool."""
    if not enabled:
        return pool
    allowed = set(enabled)
    filtered = tuple(name for name in pool if name in allowed)
    return filtered or pool


def _pool_weights(pool: tuple[str, ...], weights: Mapping[str, float]) -> dict[str, float]:
    return {name: weights.get(name, 1.0) for name in pool}


def select_pairing_type(
    weights: Mapping[str, float],
    rng: random.Random,
    enabled: Iterable[PairingType] | None = None,
) -> PairingType:
    """Draw same_recording or different_recording."""
    pool = _filter_pool(PAIRING_TYPES, enabled)
    return weighted_choice(_pool_weights(pool, weights), rng)


def transition_pool(pairing_type: PairingType) -> tuple[TransitionMode, ...]:
    if pairing_type == "different_recording":
        return DIFFERENT_RECORDING_TRANSITIONS
    return SAME_RECORDING_TRANSITIONS


def select_transition_mode(
    pairing_type: PairingType,
    weights: Mapping[str, float],
    rng: random.Random,
    enabled: Iterable[TransitionMode] | None = None,
) -> TransitionMode:
    """Draw a transition mode valid for the pairing type. Never returns None."""
    pool = _filter_pool(transition_pool(pairing_type), enabled)
    return weighted_choice(_pool_weights(pool, weights), rng)


def select_round_mode(
    weights: Mapping[str, float],
    rng: random.Random,
    enabled: bool = False,
) -> RoundMode:
    """Draw a round mode, or mixtape when round-mode drawing is off."""
    if not enabled:
        return DEFAULT_ROUND_MODE
    return weighted_choice(_pool_weights(DRAWABLE_ROUND_MODES, weights), rng)

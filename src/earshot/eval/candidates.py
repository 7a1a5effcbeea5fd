"""Candidate sampling for a round.

Picks the recording(s) for the drawn pairing type and one encoded
variant per side, weighted by the configured codec/bitrate weights.
Every function returns None when the catalog cannot supply a valid
pair; that is a normal outcome, not an error.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace

from earshot.core.catalog import CatalogSnapshot, enabled_variants
from earshot.core.config import RoundConfig
from earshot.core.sampling import (
    random_element,
    weighted_choice,
    weighted_sample_without_replacement,
)
from earshot.db.repo import DbSession
from earshot.models.domain import EncodedVariantEntity, PairingType


@dataclass(frozen=True)
class CandidatePair:
    """The two variants of a round, before tokens are issued."""

    a: EncodedVariantEntity
    b: EncodedVariantEntity
    pairing_type: PairingType
    duration_ms: int
    is_placebo: bool = False

    @property
    def identical(self) -> bool:
        return self.a.variant_id == self.b.variant_id


def _weighted_variant(
    variants: list[EncodedVariantEntity],
    config: RoundConfig,
    rng: random.Random,
) -> EncodedVariantEntity:
    """Draw one variant by permutation weight (uniform if all weights are zero)."""
    weights = {i: config.permutation_weight(v.key) for i, v in enumerate(variants)}
    return variants[weighted_choice(weights, rng)]


def sample_same_recording(
    session: DbSession,
    catalog: CatalogSnapshot,
    config: RoundConfig,
    rng: random.Random,
) -> CandidatePair | None:
    """Two variants of one recording, or the same variant twice for a placebo."""
    recording = random_element(catalog.recordings, rng)
    if recording is None:
        return None

    variants = enabled_variants(session, recording.recording_id, catalog.enabled_keys)
    if not variants:
        return None

    if rng.random() < config.placebo_probability:
        chosen = _weighted_variant(variants, config, rng)
        return CandidatePair(
            a=chosen,
            b=chosen,
            pairing_type="same_recording",
            duration_ms=recording.duration_ms,
            is_placebo=True,
        )

    if len(variants) < 2:
        return None

    weights = [config.permutation_weight(v.key) for v in variants]
    picked = weighted_sample_without_replacement(variants, weights, 2, rng)
    if len(picked) != 2:
        return None

    return CandidatePair(
        a=picked[0],
        b=picked[1],
        pairing_type="same_recording",
        duration_ms=recording.duration_ms,
    )


def sample_different_recording(
    session: DbSession,
    catalog: CatalogSnapshot,
    config: RoundConfig,
    rng: random.Random,
) -> CandidatePair | None:
    """One variant from each of two distinct recordings."""
    if len(catalog.recordings) < 2:
        return None

    first = random_element(catalog.recordings, rng)
    second = random_element(
        [r for r in catalog.recordings if r.recording_id != first.recording_id], rng
    )
    if second is None:
        return None

    variants_a = enabled_variants(session, first.recording_id, catalog.enabled_keys)
    variants_b = enabled_variants(session, second.recording_id, catalog.enabled_keys)
    if not variants_a or not variants_b:
        return None

    return CandidatePair(
        a=_weighted_variant(variants_a, config, rng),
        b=_weighted_variant(variants_b, config, rng),
        pairing_type="different_recording",
        duration_ms=min(first.duration_ms, second.duration_ms),
    )


def sample_candidates(
    session: DbSession,
    pairing_type: PairingType,
    catalog: CatalogSnapshot,
    config: RoundConfig,
    rng: random.Random,
) -> CandidatePair | None:
    """Dispatch on pairing type."""
    if pairing_type == "different_recording":
        return sample_different_recording(session, catalog, config, rng)
    return sample_same_recording(session, catalog, config, rng)


def randomize_sides(pair: CandidatePair, rng: random.Random) -> CandidatePair:
    """Swap A and B with probability 0.5 to prevent position bias.

    Not applied to identical candidates.
    """
    if pair.identical:
        return pair
    if rng.random() < 0.5:
        return replace(pair, a=pair.b, b=pair.a)
    return pair

"""Operator-tunable trial configuration.

Each weight group is stored under its own key in the survey_config table
and is parsed and defaulted independently: a corrupt entry for one group
never affects another. Getters never raise on malformed stored data.
Setters clamp to valid ranges before persisting.

Round generation takes a RoundConfig snapshot loaded fresh per call, so
tests can inject arbitrary weights without touching the database.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from earshot.db import repo
from earshot.db.repo import DbSession
from earshot.models.domain import (
    DRAWABLE_ROUND_MODES,
    TRANSITION_MODES,
    VariantKey,
)

logger = logging.getLogger(__name__)

PAIRING_WEIGHTS_KEY = "pairing_weights"
SEGMENT_DURATION_KEY = "segment_duration_ms"
PLACEBO_PROBABILITY_KEY = "placebo_probability"
PERMUTATION_WEIGHTS_KEY = "permutation_weights"
TRANSITION_WEIGHTS_KEY = "transition_weights"
MODE_WEIGHTS_KEY = "mode_weights"
TRADEOFF_MIN_GAP_KEY = "tradeoff_min_gap"
TRADEOFF_MAX_GAP_KEY = "tradeoff_max_gap"
TRADEOFF_GAP_POINTS_KEY = "tradeoff_gap_points"

DEFAULT_SEGMENT_DURATION_MS = 12_000
MIN_SEGMENT_DURATION_MS = 1_000
MAX_SEGMENT_DURATION_MS = 120_000
DEFAULT_PLACEBO_PROBABILITY = 0.1
DEFAULT_PERMUTATION_WEIGHT = 1.0

DEFAULT_PAIRING_WEIGHTS: dict[str, float] = {
    "same_recording": 0.7,
    "different_recording": 0.2,
}
DEFAULT_TRANSITION_WEIGHTS: dict[str, float] = {mode: 1.0 for mode in TRANSITION_MODES}
DEFAULT_MODE_WEIGHTS: dict[str, float] = {mode: 1.0 for mode in DRAWABLE_ROUND_MODES}


@dataclass(frozen=True)
class TradeoffGapPoint:
    """Control point of the trade-off gap curve."""

    gap: float
    weight: float


@dataclass(frozen=True)
class TradeoffGapConfig:
    """Allowed quality gap range and its weighted control points."""

    min_gap: float = 0.5
    max_gap: float = 2.5
    gap_points: tuple[TradeoffGapPoint, ...] = (
        TradeoffGapPoint(gap=0.5, weight=0.2),
        TradeoffGapPoint(gap=1.5, weight=0.5),
        TradeoffGapPoint(gap=2.5, weight=0.3),
    )


DEFAULT_TRADEOFF_GAP_CONFIG = TradeoffGapConfig()


@dataclass(frozen=True)
class RoundConfig:
    """Snapshot of every weight group used by round generation."""

    pairing_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_PAIRING_WEIGHTS)
    )
    placebo_probability: float = DEFAULT_PLACEBO_PROBABILITY
    permutation_weights: Mapping[VariantKey, float] = field(default_factory=dict)
    transition_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_TRANSITION_WEIGHTS)
    )
    mode_weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_MODE_WEIGHTS))
    segment_duration_ms: int = DEFAULT_SEGMENT_DURATION_MS
    tradeoff_gap: TradeoffGapConfig = DEFAULT_TRADEOFF_GAP_CONFIG

    def permutation_weight(self, key: VariantKey) -> float:
        """Weight of a codec/bitrate combination; unknown combinations weigh 1."""
        return self.permutation_weights.get(key, DEFAULT_PERMUTATION_WEIGHT)


# ============================================================================
# Parsing helpers
# ============================================================================


def _is_weight(value: Any) -> bool:
    """True for finite, non-negative numbers (bools excluded)."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


def _parse_float(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _load_json(session: DbSession, key: str) -> Any:
    """Load and decode a JSON config value. None if missing or malformed."""
    raw = repo.get_config_value(session, key)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Malformed JSON for config key {key!r}; using default")
        return None


def _load_weight_group(session: DbSession, key: str, defaults: dict[str, float]) -> dict[str, float]:
    """Load a fixed-key weight group, defaulting each invalid field."""
    weights = dict(defaults)
    parsed = _load_json(session, key)
    if not isinstance(parsed, dict):
        return weights
    for name in defaults:
        if _is_weight(parsed.get(name)):
            weights[name] = float(parsed[name])
    return weights


def _clamp_weight_group(weights: Mapping[str, float], defaults: dict[str, float]) -> dict[str, float]:
    """Keep known names only and clamp negatives to zero."""
    return {name: max(0.0, float(weights.get(name, defaults[name]))) for name in defaults}


def _parse_gap_points(raw: Any) -> tuple[TradeoffGapPoint, ...]:
    if not isinstance(raw, list):
        return ()
    points = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        gap, weight = item.get("gap"), item.get("weight")
        if isinstance(gap, (int, float)) and not isinstance(gap, bool) and _is_weight(weight):
            points.append(TradeoffGapPoint(gap=float(gap), weight=float(weight)))
    return tuple(points)


# ============================================================================
# Pairing weights
# ============================================================================


def get_pairing_weights(session: DbSession) -> dict[str, float]:
    """Weights for same_recording vs different_recording pairings."""
    return _load_weight_group(session, PAIRING_WEIGHTS_KEY, DEFAULT_PAIRING_WEIGHTS)


def set_pairing_weights(session: DbSession, weights: Mapping[str, float]) -> None:
    clamped = _clamp_weight_group(weights, DEFAULT_PAIRING_WEIGHTS)
    repo.set_config_value(session, PAIRING_WEIGHTS_KEY, json.dumps(clamped))


# ============================================================================
# Placebo probability
# ============================================================================


def get_placebo_probability(session: DbSession) -> float:
    """Probability that a same-recording round is a trap pair."""
    value = _parse_float(repo.get_config_value(session, PLACEBO_PROBABILITY_KEY))
    if value is None or not 0 <= value <= 1:
        return DEFAULT_PLACEBO_PROBABILITY
    return value


def set_placebo_probability(session: DbSession, probability: float) -> None:
    clamped = max(0.0, min(1.0, float(probability)))
    repo.set_config_value(session, PLACEBO_PROBABILITY_KEY, str(clamped))


# ============================================================================
# Permutation weights
# ============================================================================


def get_permutation_weights(session: DbSession) -> dict[VariantKey, float]:
    """Per codec/bitrate sampling weights. Malformed entries are dropped."""
    parsed = _load_json(session, PERMUTATION_WEIGHTS_KEY)
    if not isinstance(parsed, dict):
        return {}
    weights: dict[VariantKey, float] = {}
    for raw_key, value in parsed.items():
        key = VariantKey.parse(raw_key)
        if key is not None and _is_weight(value):
            weights[key] = float(value)
    return weights


def set_permutation_weights(session: DbSession, weights: Mapping[VariantKey, float]) -> None:
    serialized = {key.serialize(): float(w) for key, w in weights.items() if _is_weight(w)}
    repo.set_config_value(session, PERMUTATION_WEIGHTS_KEY, json.dumps(serialized, sort_keys=True))


# ============================================================================
# Transition and round mode weights
# ============================================================================


def get_transition_weights(session: DbSession) -> dict[str, float]:
    return _load_weight_group(session, TRANSITION_WEIGHTS_KEY, DEFAULT_TRANSITION_WEIGHTS)


def set_transition_weights(session: DbSession, weights: Mapping[str, float]) -> None:
    clamped = _clamp_weight_group(weights, DEFAULT_TRANSITION_WEIGHTS)
    repo.set_config_value(session, TRANSITION_WEIGHTS_KEY, json.dumps(clamped))


def get_mode_weights(session: DbSession) -> dict[str, float]:
    return _load_weight_group(session, MODE_WEIGHTS_KEY, DEFAULT_MODE_WEIGHTS)


def set_mode_weights(session: DbSession, weights: Mapping[str, float]) -> None:
    clamped = _clamp_weight_group(weights, DEFAULT_MODE_WEIGHTS)
    repo.set_config_value(session, MODE_WEIGHTS_KEY, json.dumps(clamped))


# ============================================================================
# Segment duration
# ============================================================================


def get_segment_duration(session: DbSession) -> int:
    """Segment duration in ms, within [1000, 120000]."""
    raw = repo.get_config_value(session, SEGMENT_DURATION_KEY)
    if not raw:
        return DEFAULT_SEGMENT_DURATION_MS
    parsed = _parse_float(raw)
    if parsed is None:
        logger.warning(f"Malformed segment duration {raw!r}; using default")
        return DEFAULT_SEGMENT_DURATION_MS
    value = int(parsed)
    if not MIN_SEGMENT_DURATION_MS <= value <= MAX_SEGMENT_DURATION_MS:
        return DEFAULT_SEGMENT_DURATION_MS
    return value


def set_segment_duration(session: DbSession, duration_ms: float) -> None:
    clamped = max(MIN_SEGMENT_DURATION_MS, min(MAX_SEGMENT_DURATION_MS, round(duration_ms)))
    repo.set_config_value(session, SEGMENT_DURATION_KEY, str(clamped))


# ============================================================================
# Trade-off gap curve
# ============================================================================


def get_tradeoff_gap_config(session: DbSession) -> TradeoffGapConfig:
    """Gap range and control points. max_gap is never below min_gap."""
    min_gap = DEFAULT_TRADEOFF_GAP_CONFIG.min_gap
    max_gap = DEFAULT_TRADEOFF_GAP_CONFIG.max_gap
    gap_points = DEFAULT_TRADEOFF_GAP_CONFIG.gap_points

    parsed_min = _parse_float(repo.get_config_value(session, TRADEOFF_MIN_GAP_KEY))
    if parsed_min is not None and parsed_min >= 0:
        min_gap = parsed_min

    parsed_max = _parse_float(repo.get_config_value(session, TRADEOFF_MAX_GAP_KEY))
    if parsed_max is not None and parsed_max >= min_gap:
        max_gap = parsed_max
    elif max_gap < min_gap:
        max_gap = min_gap

    points = _parse_gap_points(_load_json(session, TRADEOFF_GAP_POINTS_KEY))
    if points:
        gap_points = points

    return TradeoffGapConfig(min_gap=min_gap, max_gap=max_gap, gap_points=gap_points)


def set_tradeoff_gap_config(session: DbSession, gap_config: TradeoffGapConfig) -> None:
    min_gap = max(0.0, gap_config.min_gap)
    max_gap = max(min_gap, gap_config.max_gap)
    points = [
        {"gap": p.gap, "weight": p.weight}
        for p in gap_config.gap_points
        if math.isfinite(p.gap) and _is_weight(p.weight)
    ]
    repo.set_config_value(session, TRADEOFF_MIN_GAP_KEY, str(min_gap))
    repo.set_config_value(session, TRADEOFF_MAX_GAP_KEY, str(max_gap))
    repo.set_config_value(session, TRADEOFF_GAP_POINTS_KEY, json.dumps(points))


# ============================================================================
# Snapshot
# ============================================================================


def load_round_config(session: DbSession) -> RoundConfig:
    """Load every weight group into a RoundConfig snapshot."""
    return RoundConfig(
        pairing_weights=get_pairing_weights(session),
        placebo_probability=get_placebo_probability(session),
        permutation_weights=get_permutation_weights(session),
        transition_weights=get_transition_weights(session),
        mode_weights=get_mode_weights(session),
        segment_duration_ms=get_segment_duration(session),
        tradeoff_gap=get_tradeoff_gap_config(session),
    )

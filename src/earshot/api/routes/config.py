"""Survey configuration API endpoint.

GET /api/config - Current weight groups
PUT /api/config/pairing-weights - Save pairing weights
PUT /api/config/placebo - Save placebo probability
PUT /api/config/permutation-weights - Save codec/bitrate weights
PUT /api/config/transition-weights - Save transition weights
PUT /api/config/mode-weights - Save round mode weights
PUT /api/config/segment-duration - Save segment duration
PUT /api/config/tradeoff-gap - Save trade-off gap curve
"""

from __future__ import annotations

import math

from fastapi import APIRouter, Depends, HTTPException

from earshot.api.app import get_db_session
from earshot.core import config as survey_config
from earshot.core.config import TradeoffGapConfig, TradeoffGapPoint
from earshot.db import repo
from earshot.db.repo import DbSession
from earshot.models.domain import VariantKey
from earshot.models.types import (
    GapPointDetail,
    ModeWeightsDetail,
    PairingWeightsDetail,
    PlaceboDetail,
    SegmentDurationDetail,
    SurveyConfigDetail,
    TradeoffGapDetail,
    TransitionWeightsDetail,
)

router = APIRouter()


def _require_positive_total(weights: dict[str, float], group: str) -> None:
    if sum(weights.values()) <= 0:
        raise HTTPException(status_code=400, detail=f"At least one {group} weight must be positive")


def _config_detail(session: DbSession) -> SurveyConfigDetail:
    cfg = survey_config.load_round_config(session)
    return SurveyConfigDetail(
        pairing_weights=PairingWeightsDetail(**cfg.pairing_weights),
        placebo_probability=cfg.placebo_probability,
        permutation_weights={k.serialize(): w for k, w in sorted(cfg.permutation_weights.items())},
        transition_weights=TransitionWeightsDetail(**cfg.transition_weights),
        mode_weights=ModeWeightsDetail(**cfg.mode_weights),
        segment_duration_ms=cfg.segment_duration_ms,
        tradeoff_gap=TradeoffGapDetail(
            min_gap=cfg.tradeoff_gap.min_gap,
            max_gap=cfg.tradeoff_gap.max_gap,
            gap_points=[
                GapPointDetail(gap=p.gap, weight=p.weight) for p in cfg.tradeoff_gap.gap_points
            ],
        ),
    )


@router.get("/config", response_model=SurveyConfigDetail)
def get_config(session: DbSession = Depends(get_db_session)) -> SurveyConfigDetail:
    """Get every weight group, with defaults filled in."""
    return _config_detail(session)


@router.put("/config/pairing-weights", response_model=SurveyConfigDetail)
def put_pairing_weights(
    body: PairingWeightsDetail,
    session: DbSession = Depends(get_db_session),
) -> SurveyConfigDetail:
    weights = body.model_dump()
    _require_positive_total(weights, "pairing")
    survey_config.set_pairing_weights(session, weights)
    repo.commit(session)
    return _config_detail(session)


@router.put("/config/placebo", response_model=SurveyConfigDetail)
def put_placebo(
    body: PlaceboDetail,
    session: DbSession = Depends(get_db_session),
) -> SurveyConfigDetail:
    survey_config.set_placebo_probability(session, body.placebo_probability)
    repo.commit(session)
    return _config_detail(session)


@router.put("/config/permutation-weights", response_model=SurveyConfigDetail)
def put_permutation_weights(
    body: dict[str, float],
    session: DbSession = Depends(get_db_session),
) -> SurveyConfigDetail:
    """Save weights keyed by "codec_bitrate", e.g. {"opus_128": 2}."""
    weights: dict[VariantKey, float] = {}
    for raw_key, weight in body.items():
        key = VariantKey.parse(raw_key)
        if key is None:
            raise HTTPException(status_code=400, detail=f"Invalid variant key: {raw_key}")
        if not math.isfinite(weight) or weight < 0:
            raise HTTPException(status_code=400, detail=f"Invalid weight for {raw_key}")
        weights[key] = weight
    if sum(weights.values()) <= 0:
        raise HTTPException(
            status_code=400, detail="At least one permutation weight must be positive"
        )
    survey_config.set_permutation_weights(session, weights)
    repo.commit(session)
    return _config_detail(session)


@router.put("/config/transition-weights", response_model=SurveyConfigDetail)
def put_transition_weights(
    body: TransitionWeightsDetail,
    session: DbSession = Depends(get_db_session),
) -> SurveyConfigDetail:
    weights = body.model_dump()
    _require_positive_total(weights, "transition")
    survey_config.set_transition_weights(session, weights)
    repo.commit(session)
    return _config_detail(session)


@router.put("/config/mode-weights", response_model=SurveyConfigDetail)
def put_mode_weights(
    body: ModeWeightsDetail,
    session: DbSession = Depends(get_db_session),
) -> SurveyConfigDetail:
    weights = body.model_dump()
    _require_positive_total(weights, "mode")
    survey_config.set_mode_weights(session, weights)
    repo.commit(session)
    return _config_detail(session)


@router.put("/config/segment-duration", response_model=SurveyConfigDetail)
def put_segment_duration(
    body: SegmentDurationDetail,
    session: DbSession = Depends(get_db_session),
) -> SurveyConfigDetail:
    survey_config.set_segment_duration(session, body.segment_duration_ms)
    repo.commit(session)
    return _config_detail(session)


@router.put("/config/tradeoff-gap", response_model=SurveyConfigDetail)
def put_tradeoff_gap(
    body: TradeoffGapDetail,
    session: DbSession = Depends(get_db_session),
) -> SurveyConfigDetail:
    """Save the gap range and curve. An empty curve keeps the default points."""
    if body.max_gap < body.min_gap:
        raise HTTPException(status_code=400, detail="Max gap must be >= min gap")
    points = tuple(TradeoffGapPoint(gap=p.gap, weight=p.weight) for p in body.gap_points)
    gap_config = TradeoffGapConfig(
        min_gap=body.min_gap,
        max_gap=body.max_gap,
        gap_points=points or survey_config.DEFAULT_TRADEOFF_GAP_CONFIG.gap_points,
    )
    survey_config.set_tradeoff_gap_config(session, gap_config)
    repo.commit(session)
    return _config_detail(session)

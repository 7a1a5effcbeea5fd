"""Pydantic models for the Earshot API.

Round payloads never carry variant IDs, storage keys or the pairing
type: tokens are the only handle a client gets on the audio.
"""

from typing import Literal

from pydantic import BaseModel, Field


class TrackLabelDetail(BaseModel):
    """Display metadata for one side of a round."""

    title: str
    artists: list[str]
    featured_artists: list[str]
    remix_artists: list[str]
    stream_url: str | None


class RoundDetail(BaseModel):
    """Round handed to the listener."""

    token_a: str
    token_b: str
    preview_token_a: str | None
    preview_token_b: str | None
    transition_mode: Literal["gapless", "gap_continue", "gap_restart", "gap_pause_resume"]
    round_mode: Literal["codec_compare", "bitrate_battle", "genre_trials", "tradeoff", "mixtape"]
    start_time_ms: int
    segment_duration_ms: int
    label_a: TrackLabelDetail
    label_b: TrackLabelDetail


class AnswerSubmission(BaseModel):
    """Listener answer for a round.

    selected and transition_mode are checked by the domain layer so that
    unknown values come back as 400 rather than a schema error.
    """

    token_a: str = Field(min_length=1)
    token_b: str = Field(min_length=1)
    preview_token_a: str | None = None
    preview_token_b: str | None = None
    selected: str
    transition_mode: str
    round_mode: str | None = None
    start_time_ms: int | None = Field(default=None, ge=0)
    segment_duration_ms: int | None = Field(default=None, gt=0)
    response_time_ms: int | None = Field(default=None, ge=0)
    device_id: str = Field(min_length=1)
    session_id: str | None = None
    playback_position_ms: int | None = None


class GapPointDetail(BaseModel):
    """Trade-off gap curve control point."""

    gap: float
    weight: float = Field(ge=0)


class TradeoffGapDetail(BaseModel):
    """Trade-off gap range and control points."""

    min_gap: float = Field(ge=0)
    max_gap: float = Field(ge=0)
    gap_points: list[GapPointDetail]


class PairingWeightsDetail(BaseModel):
    same_recording: float = Field(ge=0, allow_inf_nan=False)
    different_recording: float = Field(ge=0, allow_inf_nan=False)


class TransitionWeightsDetail(BaseModel):
    gapless: float = Field(default=1, ge=0, allow_inf_nan=False)
    gap_continue: float = Field(default=1, ge=0, allow_inf_nan=False)
    gap_restart: float = Field(default=1, ge=0, allow_inf_nan=False)
    gap_pause_resume: float = Field(default=1, ge=0, allow_inf_nan=False)


class ModeWeightsDetail(BaseModel):
    codec_compare: float = Field(default=1, ge=0, allow_inf_nan=False)
    bitrate_battle: float = Field(default=1, ge=0, allow_inf_nan=False)
    genre_trials: float = Field(default=1, ge=0, allow_inf_nan=False)
    tradeoff: float = Field(default=1, ge=0, allow_inf_nan=False)


class PlaceboDetail(BaseModel):
    placebo_probability: float = Field(ge=0, le=1)


class SegmentDurationDetail(BaseModel):
    segment_duration_ms: int = Field(ge=1000, le=120_000)


class SurveyConfigDetail(BaseModel):
    """All operator-tunable weight groups."""

    pairing_weights: PairingWeightsDetail
    placebo_probability: float
    permutation_weights: dict[str, float]  # "codec_bitrate" -> weight
    transition_weights: TransitionWeightsDetail
    mode_weights: ModeWeightsDetail
    segment_duration_ms: int
    tradeoff_gap: TradeoffGapDetail

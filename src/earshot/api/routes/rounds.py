"""Rounds API endpoint.

GET /api/rounds/next - Generate the next listening round
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from earshot.api.app import get_db_session
from earshot.db.repo import DbSession
from earshot.eval.rounds import RoundResult, generate_round
from earshot.models.domain import PAIRING_TYPES, TRANSITION_MODES, TrackLabel
from earshot.models.types import RoundDetail, TrackLabelDetail

router = APIRouter()

NO_ROUND_MESSAGE = "No audio comparisons available yet. Check back soon!"


def parse_csv_filter(raw: str | None, allowed: tuple[str, ...]) -> list[str] | None:
    """Parse a comma-separated filter, dropping unknown names.

    Returns None (no filter) when nothing valid remains.
    """
    if not raw or not raw.strip():
        return None
    names = [part.strip() for part in raw.split(",")]
    valid = [name for name in names if name in allowed]
    return valid or None


def _label_to_detail(label: TrackLabel) -> TrackLabelDetail:
    return TrackLabelDetail(
        title=label.title,
        artists=label.artists,
        featured_artists=label.featured_artists,
        remix_artists=label.remix_artists,
        stream_url=label.stream_url,
    )


def _round_to_detail(result: RoundResult) -> RoundDetail:
    """Convert RoundResult to RoundDetail, dropping server-only fields."""
    return RoundDetail(
        token_a=result.token_a,
        token_b=result.token_b,
        preview_token_a=result.preview_token_a,
        preview_token_b=result.preview_token_b,
        transition_mode=result.transition_mode,
        round_mode=result.round_mode,
        start_time_ms=result.start_time_ms,
        segment_duration_ms=result.segment_duration_ms,
        label_a=_label_to_detail(result.label_a),
        label_b=_label_to_detail(result.label_b),
    )


@router.get("/rounds/next", response_model=RoundDetail)
def get_next_round(
    transition_modes: str | None = Query(default=None),
    pairing_types: str | None = Query(default=None),
    session: DbSession = Depends(get_db_session),
) -> RoundDetail:
    """Generate a new round.

    Args:
        transition_modes: Comma-separated transition modes the listener enabled.
        pairing_types: Comma-separated pairing types the listener enabled.
        session: Database session (injected).

    Returns:
        RoundDetail with tokens, timing and labels.

    Raises:
        HTTPException: 404 if no round can be formed.
    """
    result = generate_round(
        session,
        enabled_transitions=parse_csv_filter(transition_modes, TRANSITION_MODES),
        enabled_pairings=parse_csv_filter(pairing_types, PAIRING_TYPES),
    )

    if result is None:
        raise HTTPException(status_code=404, detail=NO_ROUND_MESSAGE)

    return _round_to_detail(result)

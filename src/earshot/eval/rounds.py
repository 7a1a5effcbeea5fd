"""Round generation for blind A/B listening trials.

generate_round reads the catalog and configuration, draws the pairing,
transition and round mode, samples candidates, positions the segment and
issues tokens. Any unmet precondition ends the call with None, which
callers surface as an empty state. There is no retry here.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from earshot.core.catalog import find_preview_variant, load_catalog, recording_label
from earshot.core.config import RoundConfig, load_round_config
from earshot.core.tokens import (
    COMPARISON_TOKEN_TTL,
    PREVIEW_TOKEN_TTL,
    issue_token,
    utcnow,
)
from earshot.db import repo
from earshot.db.repo import DbSession
from earshot.eval.candidates import CandidatePair, randomize_sides, sample_candidates
from earshot.eval.pairing import select_pairing_type, select_round_mode, select_transition_mode
from earshot.models.domain import (
    PairingType,
    RoundMode,
    TrackLabel,
    TransitionMode,
)

logger = logging.getLogger(__name__)


@dataclass
class RoundResult:
    """Client-facing round. Only the tokens are persisted."""

    token_a: str
    token_b: str
    preview_token_a: str | None
    preview_token_b: str | None
    transition_mode: TransitionMode
    round_mode: RoundMode
    start_time_ms: int
    segment_duration_ms: int
    label_a: TrackLabel
    label_b: TrackLabel
    pairing_type: PairingType
    is_placebo: bool = False


def pick_start_time(duration_ms: int, segment_duration_ms: int, rng: random.Random) -> int:
    """Uniform start offset in [0, duration - segment); 0 if the segment does not fit."""
    max_start = max(0, duration_ms - segment_duration_ms)
    if max_start == 0:
        return 0
    return rng.randrange(max_start)


def _issue_preview_token(session: DbSession, recording_id: str) -> str | None:
    """Best-effort preview token, committed on its own.

    None if the recording has no preview rendition or storage fails.
    """
    try:
        preview = find_preview_variant(session, recording_id)
        if preview is None:
            return None
        token = issue_token(session, preview.variant_id, PREVIEW_TOKEN_TTL)
        repo.commit(session)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to issue preview token for {recording_id}: {e}")
        repo.rollback(session)
        return None
    return token


def _issue_comparison_tokens(session: DbSession, pair: CandidatePair) -> tuple[str, str] | None:
    """Issue and commit both comparison tokens. None if the insert fails."""
    now = utcnow()
    try:
        token_a = issue_token(session, pair.a.variant_id, COMPARISON_TOKEN_TTL, now=now)
        token_b = issue_token(session, pair.b.variant_id, COMPARISON_TOKEN_TTL, now=now)
        repo.flush(session)
        repo.commit(session)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to store comparison tokens: {e}")
        repo.rollback(session)
        return None
    return token_a, token_b


def generate_round(
    session: DbSession,
    config: RoundConfig | None = None,
    *,
    enabled_transitions: Iterable[TransitionMode] | None = None,
    enabled_pairings: Iterable[PairingType] | None = None,
    draw_round_mode: bool = False,
    rng: random.Random | None = None,
) -> RoundResult | None:
    """Generate one comparison round and commit its tokens.

    Args:
        session: Database session.
        config: Weight snapshot. Loaded from the database when omitted.
        enabled_transitions: Listener's transition-mode filter; ignored for
            a draw when it removes every option.
        enabled_pairings: Listener's pairing-type filter, same fallback.
        draw_round_mode: Draw the round mode from the mode weights instead
            of returning mixtape.
        rng: Random source. A fresh random.Random when omitted.

    Returns:
        RoundResult, or None when no round can be formed.
    """
    rng = rng or random.Random()

    catalog = load_catalog(session)
    if catalog.is_empty:
        reason = "no eligible recordings" if not catalog.recordings else "no enabled variant options"
        logger.debug(f"No round: {reason}")
        return None

    if config is None:
        config = load_round_config(session)

    pairing_type = select_pairing_type(config.pairing_weights, rng, enabled_pairings)
    transition_mode = select_transition_mode(
        pairing_type, config.transition_weights, rng, enabled_transitions
    )
    round_mode = select_round_mode(config.mode_weights, rng, enabled=draw_round_mode)

    pair = sample_candidates(session, pairing_type, catalog, config, rng)
    if pair is None:
        logger.debug(f"No round: not enough candidates for {pairing_type}")
        return None
    pair = randomize_sides(pair, rng)

    start_time_ms = pick_start_time(pair.duration_ms, config.segment_duration_ms, rng)

    tokens = _issue_comparison_tokens(session, pair)
    if tokens is None:
        return None
    token_a, token_b = tokens

    preview_token_a = _issue_preview_token(session, pair.a.recording_id)
    preview_token_b = _issue_preview_token(session, pair.b.recording_id)

    label_a = recording_label(session, pair.a.variant_id)
    label_b = recording_label(session, pair.b.variant_id)

    return RoundResult(
        token_a=token_a,
        token_b=token_b,
        preview_token_a=preview_token_a,
        preview_token_b=preview_token_b,
        transition_mode=transition_mode,
        round_mode=round_mode,
        start_time_ms=start_time_ms,
        segment_duration_ms=config.segment_duration_ms,
        label_a=label_a,
        label_b=label_b,
        pairing_type=pair.pairing_type,
        is_placebo=pair.is_placebo,
    )

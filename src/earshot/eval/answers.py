"""Answer submission for listening rounds.

Resolves the round's tokens back to variants, records the outcome,
consumes every token of the round and mints a short playback token for
the side the listener picked.
Domain logic is pure - database operations go through repo.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from earshot.core.catalog import find_preview_variant
from earshot.core.config import DEFAULT_SEGMENT_DURATION_MS
from earshot.core.tokens import PREVIEW_TOKEN_TTL, consume_token, issue_token, resolve_token
from earshot.db import repo
from earshot.db.repo import DbSession
from earshot.models.domain import (
    ROUND_MODES,
    SELECTIONS,
    TRANSITION_MODES,
    AnswerEntity,
    RecordedPairingType,
    RoundMode,
)

logger = logging.getLogger(__name__)


class InvalidAnswerError(ValueError):
    """Malformed submission: unknown selection or transition mode."""


class TokenGoneError(ValueError):
    """A comparison token is unknown, expired or already consumed."""


@dataclass
class AnswerInput:
    """Input for answer submission."""

    token_a: str
    token_b: str
    selected: str
    transition_mode: str
    device_id: str
    preview_token_a: str | None = None
    preview_token_b: str | None = None
    round_mode: str | None = None
    start_time_ms: int | None = None
    segment_duration_ms: int | None = None
    response_time_ms: int | None = None
    session_id: str | None = None
    playback_position_ms: int | None = None


@dataclass
class AnswerResult:
    """Result of answer submission."""

    answer_id: str
    pairing_type: RecordedPairingType
    playback_token: str | None
    playback_position_ms: int


def infer_pairing_type(session: DbSession, variant_a_id: str, variant_b_id: str) -> RecordedPairingType:
    """Placebo if identical, same_recording if sharing a recording, else different."""
    if variant_a_id == variant_b_id:
        return "placebo"
    variant_a = repo.get_variant(session, variant_a_id)
    variant_b = repo.get_variant(session, variant_b_id)
    if variant_a and variant_b and variant_a.recording_id == variant_b.recording_id:
        return "same_recording"
    return "different_recording"


def _normalize_round_mode(round_mode: str | None) -> RoundMode | None:
    return round_mode if round_mode in ROUND_MODES else None


def _issue_playback_token(session: DbSession, variant_id: str) -> str | None:
    """Best-effort preview token for the selected side's recording.

    Runs after the answer is committed; a storage error only costs the
    playback token.
    """
    try:
        variant = repo.get_variant(session, variant_id)
        if variant is None:
            return None
        preview = find_preview_variant(session, variant.recording_id)
        if preview is None:
            return None
        token = issue_token(session, preview.variant_id, PREVIEW_TOKEN_TTL)
        repo.commit(session)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to issue playback token for {variant_id}: {e}")
        repo.rollback(session)
        return None
    return token


def submit_answer(session: DbSession, answer_input: AnswerInput) -> AnswerResult:
    """Record a listener's answer for a round.

    Args:
        session: Database session.
        answer_input: Submitted answer.

    Returns:
        AnswerResult with the new answer ID and optional playback token.

    Raises:
        InvalidAnswerError: If selection or transition mode is unknown.
        TokenGoneError: If either comparison token cannot be resolved.
    """
    if answer_input.selected not in SELECTIONS:
        raise InvalidAnswerError(f"Invalid selection: {answer_input.selected}")
    if answer_input.transition_mode not in TRANSITION_MODES:
        raise InvalidAnswerError(f"Invalid transition mode: {answer_input.transition_mode}")

    variant_a_id = resolve_token(session, answer_input.token_a)
    variant_b_id = resolve_token(session, answer_input.token_b)
    if variant_a_id is None or variant_b_id is None:
        raise TokenGoneError("Stream tokens expired or invalid")

    # Deleting is the single-use gate; a concurrent submission may have won
    consumed_a = consume_token(session, answer_input.token_a)
    consumed_b = consume_token(session, answer_input.token_b)
    if not (consumed_a and consumed_b):
        repo.rollback(session)
        raise TokenGoneError("Stream tokens expired or invalid")

    pairing_type = infer_pairing_type(session, variant_a_id, variant_b_id)

    answer = AnswerEntity(
        answer_id=str(uuid.uuid4()),
        device_id=answer_input.device_id,
        session_id=answer_input.session_id,
        variant_a_id=variant_a_id,
        variant_b_id=variant_b_id,
        selected=answer_input.selected,
        pairing_type=pairing_type,
        transition_mode=answer_input.transition_mode,
        round_mode=_normalize_round_mode(answer_input.round_mode),
        start_time_ms=answer_input.start_time_ms or 0,
        segment_duration_ms=answer_input.segment_duration_ms or DEFAULT_SEGMENT_DURATION_MS,
        response_time_ms=answer_input.response_time_ms,
    )
    repo.create_answer(session, answer)

    for token in (answer_input.preview_token_a, answer_input.preview_token_b):
        if token:
            consume_token(session, token)

    repo.commit(session)
    logger.info(
        f"Recorded answer {answer.answer_id} ({pairing_type}, selected={answer.selected})"
    )

    selected_variant_id = variant_a_id if answer_input.selected == "a" else variant_b_id
    playback_token = _issue_playback_token(session, selected_variant_id)

    position = answer_input.playback_position_ms
    return AnswerResult(
        answer_id=answer.answer_id,
        pairing_type=pairing_type,
        playback_token=playback_token,
        playback_position_ms=position if position is not None and position >= 0 else 0,
    )

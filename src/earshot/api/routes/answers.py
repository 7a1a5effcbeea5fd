"""Answers API endpoint.

POST /api/answers - Submit the listener's pick for a round
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from earshot.api.app import get_db_session
from earshot.db.repo import DbSession
from earshot.eval.answers import AnswerInput, InvalidAnswerError, TokenGoneError, submit_answer
from earshot.models.types import AnswerSubmission

router = APIRouter()


class AnswerCreatedResponse(BaseModel):
    """Response for answer submission."""

    answer_id: str
    success: bool
    playback_token: str | None
    playback_position_ms: int


@router.post("/answers", response_model=AnswerCreatedResponse, status_code=201)
def create_answer(
    submission: AnswerSubmission,
    session: DbSession = Depends(get_db_session),
) -> AnswerCreatedResponse:
    """Submit an answer for a round.

    Args:
        submission: Answer submission data.
        session: Database session (injected).

    Returns:
        AnswerCreatedResponse with answer_id and optional playback token.

    Raises:
        HTTPException: 400 for unknown selection or transition mode,
            410 if the round's tokens expired or were already used.
    """
    # Build typed input for domain layer
    answer_input = AnswerInput(
        token_a=submission.token_a,
        token_b=submission.token_b,
        preview_token_a=submission.preview_token_a,
        preview_token_b=submission.preview_token_b,
        selected=submission.selected,
        transition_mode=submission.transition_mode,
        round_mode=submission.round_mode,
        start_time_ms=submission.start_time_ms,
        segment_duration_ms=submission.segment_duration_ms,
        response_time_ms=submission.response_time_ms,
        device_id=submission.device_id,
        session_id=submission.session_id,
        playback_position_ms=submission.playback_position_ms,
    )

    try:
        result = submit_answer(session=session, answer_input=answer_input)
    except InvalidAnswerError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except TokenGoneError as e:
        raise HTTPException(status_code=410, detail=str(e)) from e

    return AnswerCreatedResponse(
        answer_id=result.answer_id,
        success=True,
        playback_token=result.playback_token,
        playback_position_ms=result.playback_position_ms,
    )

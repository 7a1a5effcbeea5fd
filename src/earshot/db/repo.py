"""Repository pattern for database operations.

Encapsulates all SQLAlchemy queries, keeping domain logic pure.
Returns domain models (not SQLAlchemy entities) to external callers.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlalchemy.orm import Session

from earshot.db.schema import (
    Answer,
    EncodedVariant,
    EphemeralToken,
    SourceRecording,
    SurveyConfig,
    VariantOption,
)
from earshot.models.domain import (
    AnswerEntity,
    EncodedVariantEntity,
    SourceRecordingEntity,
    TokenEntity,
    VariantKey,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session as DbSession
else:
    DbSession = Session

# Re-export for external use
__all__ = ["DbSession"]


# ============================================================================
# Converters: SQLAlchemy -> Domain
# ============================================================================


def _recording_to_entity(rec: SourceRecording) -> SourceRecordingEntity:
    """Convert SQLAlchemy SourceRecording to domain entity."""
    return SourceRecordingEntity(
        recording_id=rec.recording_id,
        title=rec.title,
        duration_ms=rec.duration_ms,
        storage_key=rec.storage_key,
        approved_at=rec.approved_at,
        artist=rec.artist,
        featured_artists=rec.featured_artists,
        remix_artists=rec.remix_artists,
        stream_url=rec.stream_url,
    )


def _variant_to_entity(variant: EncodedVariant) -> EncodedVariantEntity:
    """Convert SQLAlchemy EncodedVariant to domain entity."""
    return EncodedVariantEntity(
        variant_id=variant.variant_id,
        recording_id=variant.recording_id,
        codec=variant.codec,
        bitrate=variant.bitrate,
        storage_key=variant.storage_key,
    )


def _token_to_entity(row: EphemeralToken) -> TokenEntity:
    """Convert SQLAlchemy EphemeralToken to domain entity."""
    return TokenEntity(
        token=row.token,
        variant_id=row.variant_id,
        expires_at=row.expires_at,
    )


# ============================================================================
# Catalog Repository
# ============================================================================


def get_eligible_recordings(session: DbSession) -> list[SourceRecordingEntity]:
    """Get approved recordings with a storage key and known duration."""
    recordings = (
        session.query(SourceRecording)
        .filter(
            SourceRecording.approved_at.is_not(None),
            SourceRecording.storage_key.is_not(None),
            SourceRecording.duration_ms.is_not(None),
        )
        .order_by(SourceRecording.recording_id)
        .all()
    )
    return [_recording_to_entity(r) for r in recordings]


def get_enabled_variant_keys(session: DbSession) -> set[VariantKey]:
    """Get codec/bitrate combinations enabled for sampling."""
    rows = (
        session.query(VariantOption.codec, VariantOption.bitrate)
        .filter(VariantOption.enabled.is_(True))
        .all()
    )
    return {VariantKey(codec, bitrate) for codec, bitrate in rows}


def get_variants_for_recording(session: DbSession, recording_id: str) -> list[EncodedVariantEntity]:
    """Get all variants of a recording."""
    variants = (
        session.query(EncodedVariant)
        .filter(EncodedVariant.recording_id == recording_id)
        .order_by(EncodedVariant.variant_id)
        .all()
    )
    return [_variant_to_entity(v) for v in variants]


def get_variant(session: DbSession, variant_id: str) -> EncodedVariantEntity | None:
    """Get variant by ID."""
    variant = session.query(EncodedVariant).filter(EncodedVariant.variant_id == variant_id).first()
    return _variant_to_entity(variant) if variant else None


def find_variant(
    session: DbSession, recording_id: str, codec: str, bitrate: int
) -> EncodedVariantEntity | None:
    """Get a recording's variant for a specific codec/bitrate."""
    variant = (
        session.query(EncodedVariant)
        .filter(
            EncodedVariant.recording_id == recording_id,
            EncodedVariant.codec == codec,
            EncodedVariant.bitrate == bitrate,
        )
        .first()
    )
    return _variant_to_entity(variant) if variant else None


def get_recording_for_variant(
    session: DbSession, variant_id: str
) -> SourceRecordingEntity | None:
    """Get the owning recording of a variant."""
    rec = (
        session.query(SourceRecording)
        .join(EncodedVariant, EncodedVariant.recording_id == SourceRecording.recording_id)
        .filter(EncodedVariant.variant_id == variant_id)
        .first()
    )
    return _recording_to_entity(rec) if rec else None


# ============================================================================
# Config Repository
# ============================================================================


def get_config_value(session: DbSession, key: str) -> str | None:
    """Get raw config value by key."""
    row = session.query(SurveyConfig).filter(SurveyConfig.key == key).first()
    return row.value if row else None


def set_config_value(session: DbSession, key: str, value: str) -> None:
    """Insert or update a raw config value."""
    row = session.query(SurveyConfig).filter(SurveyConfig.key == key).first()
    if row:
        row.value = value
    else:
        session.add(SurveyConfig(key=key, value=value))


# ============================================================================
# Token Repository
# ============================================================================


def create_token(session: DbSession, entity: TokenEntity) -> TokenEntity:
    """Create a new token row."""
    row = EphemeralToken(
        token=entity.token,
        variant_id=entity.variant_id,
        expires_at=entity.expires_at,
    )
    session.add(row)
    return entity


def get_live_token(session: DbSession, token: str, now: datetime) -> TokenEntity | None:
    """Get token by value if it has not expired at `now`."""
    row = (
        session.query(EphemeralToken)
        .filter(EphemeralToken.token == token, EphemeralToken.expires_at > now)
        .first()
    )
    return _token_to_entity(row) if row else None


def delete_token(session: DbSession, token: str) -> int:
    """Delete token by value. Returns number of rows removed."""
    result = session.execute(delete(EphemeralToken).where(EphemeralToken.token == token))
    return result.rowcount


def delete_expired_tokens(session: DbSession, now: datetime) -> int:
    """Delete all tokens expired at `now`. Returns number of rows removed."""
    result = session.execute(delete(EphemeralToken).where(EphemeralToken.expires_at <= now))
    return result.rowcount


# ============================================================================
# Answer Repository
# ============================================================================


def create_answer(session: DbSession, entity: AnswerEntity) -> AnswerEntity:
    """Create a new answer."""
    answer = Answer(
        answer_id=entity.answer_id,
        device_id=entity.device_id,
        session_id=entity.session_id,
        variant_a_id=entity.variant_a_id,
        variant_b_id=entity.variant_b_id,
        selected=entity.selected,
        pairing_type=entity.pairing_type,
        transition_mode=entity.transition_mode,
        round_mode=entity.round_mode,
        start_time_ms=entity.start_time_ms,
        segment_duration_ms=entity.segment_duration_ms,
        response_time_ms=entity.response_time_ms,
    )
    session.add(answer)
    return entity


# ============================================================================
# Batch Operations
# ============================================================================


def flush(session: DbSession) -> None:
    """Flush pending changes without committing."""
    session.flush()


def commit(session: DbSession) -> None:
    """Commit current transaction."""
    session.commit()


def rollback(session: DbSession) -> None:
    """Roll back current transaction."""
    session.rollback()

"""Database schema for Earshot.

Catalog tables are written by the upload/curation tooling and only read
here. Tokens and answers are written by the round and answer flows.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class SourceRecording(Base):
    """An uploaded audio work.

    Eligible for rounds only when approved_at, storage_key and
    duration_ms are all set.
    """

    __tablename__ = "source_recordings"

    recording_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    artist: Mapped[str | None] = mapped_column(String(512), nullable=True)
    featured_artists: Mapped[str | None] = mapped_column(String(512), nullable=True)
    remix_artists: Mapped[str | None] = mapped_column(String(512), nullable=True)
    stream_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class EncodedVariant(Base):
    """One codec/bitrate rendition of a recording.

    Invariant: UNIQUE(recording_id, codec, bitrate)
    """

    __tablename__ = "encoded_variants"

    variant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    recording_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("source_recordings.recording_id"), nullable=False
    )
    codec: Mapped[str] = mapped_column(String(16), nullable=False)
    bitrate: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)

    __table_args__ = (
        UniqueConstraint("recording_id", "codec", "bitrate", name="uq_variant_identity"),
    )


class VariantOption(Base):
    """Operator switch for a codec/bitrate combination."""

    __tablename__ = "variant_options"

    option_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    codec: Mapped[str] = mapped_column(String(16), nullable=False)
    bitrate: Mapped[int] = mapped_column(Integer, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("codec", "bitrate", name="uq_variant_option"),)


class SurveyConfig(Base):
    """Key/value store for operator-tunable weights."""

    __tablename__ = "survey_config"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class EphemeralToken(Base):
    """Short-lived, single-use access token for one variant.

    expires_at is stored as naive UTC.
    """

    __tablename__ = "ephemeral_tokens"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    variant_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("encoded_variants.variant_id"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class Answer(Base):
    """Listener answer for one round (append-only)."""

    __tablename__ = "answers"

    answer_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    device_id: Mapped[str] = mapped_column(String(64), nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    variant_a_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("encoded_variants.variant_id"), nullable=False
    )
    variant_b_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("encoded_variants.variant_id"), nullable=False
    )
    selected: Mapped[str] = mapped_column(String(1), nullable=False)
    pairing_type: Mapped[str] = mapped_column(String(32), nullable=False)
    transition_mode: Mapped[str] = mapped_column(String(32), nullable=False)
    round_mode: Mapped[str | None] = mapped_column(String(32), nullable=True)
    start_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    segment_duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

"""Shared pytest fixtures for earshot tests."""

import random
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from earshot.db.schema import Base, EncodedVariant, SourceRecording, VariantOption

DEFAULT_VARIANTS = (("flac", 0), ("opus", 128))


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def session(engine):
    """Create a database session for testing."""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def rng():
    """Seeded random source for deterministic draws."""
    return random.Random(1234)


def seed_recording(
    session,
    recording_id: str,
    *,
    duration_ms: int | None = 180_000,
    variants=DEFAULT_VARIANTS,
    approved: bool = True,
    storage_key: str | None = "sources/key.flac",
    title: str = "Test Song",
    artist: str | None = "Artist A, Artist B",
    featured_artists: str | None = None,
    remix_artists: str | None = None,
    stream_url: str | None = None,
) -> list[str]:
    """Insert a recording and its variants. Returns the variant IDs."""
    session.add(
        SourceRecording(
            recording_id=recording_id,
            title=title,
            artist=artist,
            featured_artists=featured_artists,
            remix_artists=remix_artists,
            stream_url=stream_url,
            duration_ms=duration_ms,
            storage_key=storage_key,
            approved_at=datetime.now(timezone.utc) if approved else None,
        )
    )
    variant_ids = []
    for codec, bitrate in variants:
        variant_id = f"{recording_id}-{codec}-{bitrate}"
        session.add(
            EncodedVariant(
                variant_id=variant_id,
                recording_id=recording_id,
                codec=codec,
                bitrate=bitrate,
                storage_key=f"variants/{variant_id}",
            )
        )
        variant_ids.append(variant_id)
    session.commit()
    return variant_ids


def seed_options(session, options=DEFAULT_VARIANTS, enabled: bool = True) -> None:
    """Insert variant options."""
    for codec, bitrate in options:
        session.add(VariantOption(codec=codec, bitrate=bitrate, enabled=enabled))
    session.commit()


@pytest.fixture
def add_recording(session):
    """Factory fixture: add_recording("rec-1", duration_ms=...) -> variant IDs."""

    def _add(recording_id: str, **kwargs) -> list[str]:
        return seed_recording(session, recording_id, **kwargs)

    return _add


@pytest.fixture
def enable_options(session):
    """Factory fixture: enable_options([("opus", 128)])."""

    def _enable(options=DEFAULT_VARIANTS, enabled: bool = True) -> None:
        seed_options(session, options, enabled=enabled)

    return _enable

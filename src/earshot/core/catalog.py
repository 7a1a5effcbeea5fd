"""Read-only view of the approved catalog.

Wraps the catalog queries used by round generation and answer
submission. Nothing here writes.
"""

from __future__ import annotations

from dataclasses import dataclass

from earshot.db import repo
from earshot.db.repo import DbSession
from earshot.models.domain import (
    EncodedVariantEntity,
    SourceRecordingEntity,
    TrackLabel,
    VariantKey,
)

# Lowest commonly deployed lossy rendition, used for post-answer playback
PREVIEW_VARIANT = VariantKey(codec="opus", bitrate=128)

UNKNOWN_TITLE = "Unknown"


@dataclass
class CatalogSnapshot:
    """Eligible recordings and the codec/bitrate combinations enabled for sampling."""

    recordings: list[SourceRecordingEntity]
    enabled_keys: set[VariantKey]

    @property
    def is_empty(self) -> bool:
        return not self.recordings or not self.enabled_keys


def parse_list(value: str | None) -> list[str]:
    """Split a stored comma-separated list, trimming and dropping empties."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def format_list(items: list[str]) -> str:
    """Join items for storage as "A, B"."""
    return ", ".join(s.strip() for s in items if s and s.strip())


def load_catalog(session: DbSession) -> CatalogSnapshot:
    """Load eligible recordings and enabled variant combinations."""
    return CatalogSnapshot(
        recordings=repo.get_eligible_recordings(session),
        enabled_keys=repo.get_enabled_variant_keys(session),
    )


def enabled_variants(
    session: DbSession,
    recording_id: str,
    enabled_keys: set[VariantKey],
) -> list[EncodedVariantEntity]:
    """A recording's variants restricted to enabled combinations."""
    return [
        v for v in repo.get_variants_for_recording(session, recording_id) if v.key in enabled_keys
    ]


def find_preview_variant(session: DbSession, recording_id: str) -> EncodedVariantEntity | None:
    """The recording's preview rendition, if it has been encoded."""
    return repo.find_variant(
        session, recording_id, PREVIEW_VARIANT.codec, PREVIEW_VARIANT.bitrate
    )


def recording_label(session: DbSession, variant_id: str) -> TrackLabel:
    """Display metadata of the recording that owns a variant."""
    recording = repo.get_recording_for_variant(session, variant_id)
    if recording is None:
        return TrackLabel(title=UNKNOWN_TITLE)
    return TrackLabel(
        title=recording.title or UNKNOWN_TITLE,
        artists=parse_list(recording.artist),
        featured_artists=parse_list(recording.featured_artists),
        remix_artists=parse_list(recording.remix_artists),
        stream_url=recording.stream_url,
    )

"""Domain models for Earshot.

Pure Python dataclasses representing domain entities.
These models are independent of SQLAlchemy and used throughout
the application for clean separation from the database layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, get_args

# ============================================================================
# Trial Vocabulary
# ============================================================================

PairingType = Literal["same_recording", "different_recording"]
RecordedPairingType = Literal["same_recording", "different_recording", "placebo"]
TransitionMode = Literal["gapless", "gap_continue", "gap_restart", "gap_pause_resume"]
RoundMode = Literal["codec_compare", "bitrate_battle", "genre_trials", "tradeoff", "mixtape"]
Selection = Literal["a", "b"]

PAIRING_TYPES: tuple[PairingType, ...] = get_args(PairingType)
TRANSITION_MODES: tuple[TransitionMode, ...] = get_args(TransitionMode)
ROUND_MODES: tuple[RoundMode, ...] = get_args(RoundMode)
SELECTIONS: tuple[Selection, ...] = get_args(Selection)

# Switching tracks cannot be gapless
SAME_RECORDING_TRANSITIONS: tuple[TransitionMode, ...] = ("gapless", "gap_continue", "gap_restart")
DIFFERENT_RECORDING_TRANSITIONS: tuple[TransitionMode, ...] = ("gap_pause_resume",)

# Round modes that can be drawn; mixtape is the fallback when drawing is off
DRAWABLE_ROUND_MODES: tuple[RoundMode, ...] = (
    "codec_compare",
    "bitrate_battle",
    "genre_trials",
    "tradeoff",
)

# PCM rate used for lossless renditions in bitrate arithmetic
LOSSLESS_EFFECTIVE_KBPS = 1411


@dataclass(frozen=True, order=True)
class VariantKey:
    """A codec/bitrate combination, e.g. opus@128. Bitrate 0 means lossless."""

    codec: str
    bitrate: int

    def serialize(self) -> str:
        """Storage form, e.g. "opus_128"."""
        return f"{self.codec}_{self.bitrate}"

    @classmethod
    def parse(cls, raw: str) -> VariantKey | None:
        """Parse the storage form. Returns None if malformed."""
        codec, sep, bitrate = raw.rpartition("_")
        if not sep or not codec:
            return None
        try:
            return cls(codec=codec, bitrate=int(bitrate))
        except ValueError:
            return None


def effective_bitrate(codec: str, bitrate: int) -> int:
    """Bitrate in kbps for gap calculations; lossless counts as PCM."""
    if codec == "flac" or bitrate == 0:
        return LOSSLESS_EFFECTIVE_KBPS
    return bitrate


# ============================================================================
# Catalog Domain
# ============================================================================


@dataclass
class SourceRecordingEntity:
    """Domain model for an approved source recording."""

    recording_id: str
    title: str
    duration_ms: int
    storage_key: str
    approved_at: datetime
    artist: str | None = None
    featured_artists: str | None = None
    remix_artists: str | None = None
    stream_url: str | None = None


@dataclass
class EncodedVariantEntity:
    """Domain model for one encoded rendition."""

    variant_id: str
    recording_id: str
    codec: str
    bitrate: int
    storage_key: str

    @property
    def key(self) -> VariantKey:
        return VariantKey(self.codec, self.bitrate)


@dataclass
class TrackLabel:
    """Display metadata for one side of a round. Informational only."""

    title: str
    artists: list[str] = field(default_factory=list)
    featured_artists: list[str] = field(default_factory=list)
    remix_artists: list[str] = field(default_factory=list)
    stream_url: str | None = None


# ============================================================================
# Token Domain
# ============================================================================


@dataclass
class TokenEntity:
    """Domain model for an ephemeral access token."""

    token: str
    variant_id: str
    expires_at: datetime


# ============================================================================
# Answer Domain
# ============================================================================


@dataclass
class AnswerEntity:
    """Domain model for a listener answer."""

    answer_id: str
    device_id: str
    variant_a_id: str
    variant_b_id: str
    selected: Selection
    pairing_type: RecordedPairingType
    transition_mode: TransitionMode
    start_time_ms: int
    segment_duration_ms: int
    session_id: str | None = None
    round_mode: RoundMode | None = None
    response_time_ms: int | None = None

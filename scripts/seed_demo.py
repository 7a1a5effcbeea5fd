#!/usr/bin/env python3
"""Seed a demo catalog for local listening trials.

Usage:
    python scripts/seed_demo.py

This script:
1. Initializes the demo database
2. Enables the demo codec/bitrate options
3. Seeds approved recordings with one variant per option
4. Writes default survey weights
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from earshot.core import config as survey_config  # noqa: E402
from earshot.core.catalog import format_list  # noqa: E402
from earshot.db.schema import EncodedVariant, SourceRecording, VariantOption  # noqa: E402
from earshot.db.session import get_session, init_db  # noqa: E402

# Constants
DEMO_DB_PATH = PROJECT_ROOT / "demo.db"

# (codec, bitrate); bitrate 0 is lossless
DEMO_OPTIONS = [("flac", 0), ("opus", 128), ("opus", 96), ("opus", 64)]

# (recording_id, title, artists, featured, duration_ms)
DEMO_RECORDINGS = [
    ("demo-rec-1", "Morning Static", ["Low Orbit"], [], 184_000),
    ("demo-rec-2", "Glass Harbour", ["Tessellate", "Mira Okon"], ["Juno Vale"], 212_500),
    ("demo-rec-3", "Short Loop", ["Low Orbit"], [], 9_000),
]


def seed_catalog(session) -> None:
    """Insert demo options, recordings and variants if missing."""
    if session.query(SourceRecording).count() > 0:
        print("Demo catalog already exists")
        return

    print("Creating variant options...")
    for codec, bitrate in DEMO_OPTIONS:
        session.add(VariantOption(codec=codec, bitrate=bitrate, enabled=True))

    print("Creating recordings and variants...")
    approved_at = datetime.now(timezone.utc)
    for recording_id, title, artists, featured, duration_ms in DEMO_RECORDINGS:
        session.add(
            SourceRecording(
                recording_id=recording_id,
                title=title,
                artist=format_list(artists),
                featured_artists=format_list(featured) or None,
                duration_ms=duration_ms,
                storage_key=f"sources/{recording_id}.flac",
                approved_at=approved_at,
            )
        )
        for codec, bitrate in DEMO_OPTIONS:
            session.add(
                EncodedVariant(
                    variant_id=f"{recording_id}-{codec}-{bitrate}",
                    recording_id=recording_id,
                    codec=codec,
                    bitrate=bitrate,
                    storage_key=f"variants/{recording_id}/{codec}_{bitrate}",
                )
            )

    print("Writing default survey weights...")
    survey_config.set_pairing_weights(session, survey_config.DEFAULT_PAIRING_WEIGHTS)
    survey_config.set_placebo_probability(session, survey_config.DEFAULT_PLACEBO_PROBABILITY)
    survey_config.set_segment_duration(session, survey_config.DEFAULT_SEGMENT_DURATION_MS)

    session.commit()
    print(f"Seeded {len(DEMO_RECORDINGS)} recordings x {len(DEMO_OPTIONS)} variants")


def main() -> int:
    """Main entry point."""
    print("=" * 60)
    print("Earshot Demo Seeder")
    print("=" * 60)

    init_db(DEMO_DB_PATH)
    session = get_session(DEMO_DB_PATH)
    try:
        seed_catalog(session)
    finally:
        session.close()

    print(f"\nDatabase: {DEMO_DB_PATH}")
    print("Run the API with: EARSHOT_DB_PATH=demo.db uvicorn earshot.api.app:app")
    return 0


if __name__ == "__main__":
    sys.exit(main())

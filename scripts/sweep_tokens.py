#!/usr/bin/env python3
"""Delete expired ephemeral tokens.

Expiry is enforced when tokens are resolved, so this only reclaims
space. Safe to run while the API is serving.

Usage:
    EARSHOT_DB_PATH=demo.db python scripts/sweep_tokens.py
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from earshot.core.tokens import sweep_expired_tokens  # noqa: E402
from earshot.db.session import get_db_session  # noqa: E402


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    with get_db_session() as session:
        removed = sweep_expired_tokens(session)
    print(f"Removed {removed} expired tokens")
    return 0


if __name__ == "__main__":
    sys.exit(main())

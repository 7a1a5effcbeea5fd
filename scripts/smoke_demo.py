#!/usr/bin/env python3
"""Smoke test for the demo catalog.

Generates rounds against the seeded demo database, submits an answer
and checks that tokens behave as single-use credentials.

Usage:
    python scripts/seed_demo.py
    python scripts/smoke_demo.py

Exit codes:
    0: All checks passed
    1: Some checks failed
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from earshot.core.tokens import resolve_token  # noqa: E402
from earshot.db.session import get_session  # noqa: E402
from earshot.eval.answers import AnswerInput, TokenGoneError, submit_answer  # noqa: E402
from earshot.eval.rounds import generate_round  # noqa: E402

# Constants
DEMO_DB_PATH = PROJECT_ROOT / "demo.db"
SMOKE_ROUNDS = 20


def check_rounds(session) -> bool:
    """Check that rounds can be generated and their tokens resolve."""
    for _ in range(SMOKE_ROUNDS):
        result = generate_round(session)
        if result is None:
            print("FAIL: generate_round returned no round")
            return False
        if resolve_token(session, result.token_a) is None:
            print("FAIL: token A does not resolve")
            return False
        if result.start_time_ms < 0:
            print(f"FAIL: negative start time {result.start_time_ms}")
            return False
    print(f"OK: Generated {SMOKE_ROUNDS} rounds")
    return True


def check_answer_consumes_tokens(session) -> bool:
    """Check that answering consumes the round's tokens."""
    result = generate_round(session)
    if result is None:
        print("FAIL: generate_round returned no round")
        return False

    answer_input = AnswerInput(
        token_a=result.token_a,
        token_b=result.token_b,
        preview_token_a=result.preview_token_a,
        preview_token_b=result.preview_token_b,
        selected="a",
        transition_mode=result.transition_mode,
        round_mode=result.round_mode,
        start_time_ms=result.start_time_ms,
        segment_duration_ms=result.segment_duration_ms,
        device_id="smoke-device",
    )
    answer = submit_answer(session, answer_input)
    print(f"OK: Answer recorded: {answer.answer_id} ({answer.pairing_type})")

    try:
        submit_answer(session, answer_input)
    except TokenGoneError:
        print("OK: Replayed answer rejected")
        return True

    print("FAIL: Replayed answer was accepted")
    return False


def main() -> int:
    """Run all smoke checks."""
    print("=" * 60)
    print("Earshot Demo Smoke Test")
    print("=" * 60)

    if not DEMO_DB_PATH.exists():
        print(f"FAIL: Demo database not found: {DEMO_DB_PATH}")
        return 1

    session = get_session(DEMO_DB_PATH)
    try:
        checks = [check_rounds(session), check_answer_consumes_tokens(session)]
    finally:
        session.close()

    if all(checks):
        print("\nAll checks passed")
        return 0
    print("\nSome checks failed")
    return 1


if __name__ == "__main__":
    sys.exit(main())

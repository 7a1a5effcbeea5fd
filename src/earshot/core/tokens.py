"""Ephemeral access tokens.

A token is a time-boxed, single-use capability to fetch one encoded
variant. Holding one is equivalent to access, so identifiers come from
`secrets`. Expiry is checked whenever a token is read; the sweep only
reclaims space.

Callers see the same "not found" for unknown, expired and consumed
tokens.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from earshot.db import repo
from earshot.db.repo import DbSession
from earshot.models.domain import TokenEntity

logger = logging.getLogger(__name__)

COMPARISON_TOKEN_TTL = timedelta(minutes=10)
PREVIEW_TOKEN_TTL = timedelta(minutes=2)

# 32 bytes of entropy -> 43 URL-safe characters
TOKEN_BYTES = 32


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite stores expires_at."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def issue_token(
    session: DbSession,
    variant_id: str,
    ttl: timedelta,
    now: datetime | None = None,
) -> str:
    """Mint a token for a variant and stage its row in the session.

    The caller owns the transaction: nothing is committed here.

    Args:
        session: Database session.
        variant_id: Variant the token grants access to.
        ttl: Lifetime of the token.
        now: Issue time (naive UTC). Defaults to the current time.

    Returns:
        The opaque token string.
    """
    issued_at = now or utcnow()
    entity = TokenEntity(
        token=secrets.token_urlsafe(TOKEN_BYTES),
        variant_id=variant_id,
        expires_at=issued_at + ttl,
    )
    repo.create_token(session, entity)
    return entity.token


def resolve_token(session: DbSession, token: str, now: datetime | None = None) -> str | None:
    """Return the variant id a live token points at, or None."""
    if not token:
        return None
    entity = repo.get_live_token(session, token, now or utcnow())
    return entity.variant_id if entity else None


def consume_token(session: DbSession, token: str) -> bool:
    """Delete a token. Returns False if there was nothing to delete.

    The delete is the single-use gate: of two callers racing on one
    token, only one sees True.
    """
    if not token:
        return False
    return repo.delete_token(session, token) > 0


def redeem_token(session: DbSession, token: str, now: datetime | None = None) -> str | None:
    """Resolve and consume in one step, for the single playback fetch."""
    variant_id = resolve_token(session, token, now)
    if variant_id is None or not consume_token(session, token):
        return None
    return variant_id


def sweep_expired_tokens(session: DbSession, now: datetime | None = None) -> int:
    """Delete every token past its expiry. Returns the number removed."""
    removed = repo.delete_expired_tokens(session, now or utcnow())
    if removed:
        logger.info(f"Swept {removed} expired tokens")
    return removed

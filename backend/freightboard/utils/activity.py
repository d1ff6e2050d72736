"""Lightweight helper for recording activity log entries.

Usage:
    await log_activity(
        db, identity, action="offer_accepted", entity_type="offer",
        entity_id=offer.id, entity_code=load.load_number,
        summary="Accepted $1,850.00 from carrier X",
    )

The row is added to the current session and committed with the
enclosing transaction; no extra flush is performed.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.identity import Identity
from freightboard.models.activity_log import ActivityLog


async def log_activity(
    db: AsyncSession,
    identity: Identity,
    *,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    entity_code: str | None = None,
    summary: str | None = None,
    details: dict | None = None,
) -> None:
    """Append an activity log entry to the current DB session."""
    entry = ActivityLog(
        user_id=identity.id,
        role=identity.role.value,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_code=entity_code,
        summary=summary,
        details=details,
    )
    db.add(entry)

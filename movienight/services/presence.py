from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.config import settings
from movienight.models.active_user import ActiveUser
from movienight.services.schedule import as_utc


async def record_heartbeat(
    db: AsyncSession,
    *,
    user_id: str,
    display_name: str | None = None,
    now: datetime | None = None,
) -> ActiveUser:
    now = now or datetime.now(timezone.utc)
    row = await db.get(ActiveUser, user_id)
    if row is None:
        row = ActiveUser(user_id=user_id, display_name=(display_name or user_id)[:120])
        db.add(row)
    elif display_name:
        row.display_name = display_name[:120]

    row.last_seen_at = as_utc(now)
    await db.flush()
    return row


async def list_active_users(db: AsyncSession, *, now: datetime | None = None) -> list[ActiveUser]:
    now = now or datetime.now(timezone.utc)
    cutoff = as_utc(now) - timedelta(minutes=settings.active_user_threshold_minutes)
    q = (
        select(ActiveUser)
        .where(ActiveUser.last_seen_at >= cutoff)
        .order_by(ActiveUser.last_seen_at.desc(), ActiveUser.user_id.asc())
    )
    return list((await db.execute(q)).scalars().all())

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_current_user_id, get_db
from movienight.schemas.presence import ActiveUserOut, HeartbeatRequest
from movienight.services.presence import list_active_users, record_heartbeat

router = APIRouter(prefix="/presence", tags=["presence"])


@router.post("", response_model=ActiveUserOut)
async def heartbeat_route(
    payload: HeartbeatRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = await record_heartbeat(db, user_id=user_id, display_name=payload.display_name)
    await db.commit()
    return ActiveUserOut(user_id=row.user_id, display_name=row.display_name, last_seen_at=row.last_seen_at)


@router.get("", response_model=list[ActiveUserOut])
async def active_users_route(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    rows = await list_active_users(db)
    return [
        ActiveUserOut(user_id=r.user_id, display_name=r.display_name, last_seen_at=r.last_seen_at)
        for r in rows
    ]

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.config import settings
from movienight.models.daily_cycle import DailyCycle
from movienight.models.shared_movie import SharedMovie
from movienight.schemas.cycles import (
    DailyCycleOut,
    ScheduleSettingsOut,
    VotePicks,
    WinningMovieOut,
)
from movienight.services.schedule import as_utc, cycle_id_for

if TYPE_CHECKING:
    from movienight.services.cycle_machine import Transition

logger = logging.getLogger(__name__)


def local_now(now: datetime | None = None) -> datetime:
    tz = ZoneInfo(settings.cycle_timezone)
    if now is None:
        return datetime.now(tz)
    return as_utc(now).astimezone(tz)


def current_cycle_id(now: datetime | None = None) -> str:
    return cycle_id_for(local_now(now), boundary_hour=settings.cycle_day_boundary_hour)


async def load_cycle(db: AsyncSession, cycle_id: str) -> DailyCycle | None:
    q = (
        select(DailyCycle)
        .where(DailyCycle.id == cycle_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(q)).scalar_one_or_none()


async def get_or_create_cycle(db: AsyncSession, cycle_id: str) -> DailyCycle:
    existing = await load_cycle(db, cycle_id)
    if existing:
        return existing

    cycle = DailyCycle(
        id=cycle_id,
        current_status="WAITING_FOR_DECISIONS",
        finish_by_time=settings.default_finish_time,
    )
    db.add(cycle)
    try:
        await db.flush()
    except IntegrityError:
        # another worker created today's cycle first
        await db.rollback()
        created = await load_cycle(db, cycle_id)
        if created is None:
            raise
        return created

    logger.info("Created daily cycle %s", cycle_id)
    return await load_cycle(db, cycle_id)


async def require_cycle_status(db: AsyncSession, cycle_id: str, allowed: set[str], action: str) -> DailyCycle:
    cycle = await get_or_create_cycle(db, cycle_id)
    if cycle.current_status not in allowed:
        raise ValueError(f"Cycle is not accepting {action} ({cycle.current_status})")
    return cycle


def snapshot_from_cycle(cycle: DailyCycle) -> DailyCycleOut:
    winning = None
    if cycle.winning_movie_id is not None:
        winning = WinningMovieOut(movie_id=cycle.winning_movie_id, score=cycle.winning_score or 0)

    return DailyCycleOut(
        id=cycle.id,
        current_status=cycle.current_status,
        decisions={d.user_id: bool(d.will_watch) for d in cycle.decisions},
        nominations={
            n.user_id: [uuid.UUID(str(movie_id)) for movie_id in (n.movie_ids or [])]
            for n in cycle.nominations
        },
        votes={
            v.user_id: VotePicks(top_pick=v.top_pick, second_pick=v.second_pick, third_pick=v.third_pick)
            for v in cycle.votes
        },
        winning_movie=winning,
        schedule_settings=ScheduleSettingsOut(finish_by_time=cycle.finish_by_time),
        dashboard_due_at=as_utc(cycle.dashboard_due_at) if cycle.dashboard_due_at else None,
        created_at=as_utc(cycle.created_at),
    )


async def shared_movies_for(db: AsyncSession, movie_ids: set[uuid.UUID]) -> dict[uuid.UUID, SharedMovie]:
    if not movie_ids:
        return {}
    q = select(SharedMovie).where(SharedMovie.id.in_(movie_ids))
    rows = (await db.execute(q)).scalars().all()
    return {row.id: row for row in rows}


async def apply_transition(db: AsyncSession, cycle_id: str, transition: Transition) -> bool:
    """Compare-and-set write. False means someone else already moved the cycle."""
    now = datetime.now(timezone.utc)
    values: dict[str, object] = {
        "current_status": transition.target,
        "updated_at": now,
    }
    if transition.sets_winner:
        values["winning_movie_id"] = transition.winner.movie_id if transition.winner else None
        values["winning_score"] = transition.winner.score if transition.winner else None
        values["revealed_at"] = now
        values["dashboard_due_at"] = transition.dashboard_due_at

    q = (
        sa.update(DailyCycle)
        .where(DailyCycle.id == cycle_id, DailyCycle.current_status == transition.source)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(q)
    return bool(result.rowcount)

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.config import settings
from movienight.models.daily_cycle import DailyCycle
from movienight.schemas.cycles import DailyCycleOut
from movienight.services import cycle_store
from movienight.services.cycle_events import broadcaster
from movienight.services.cycle_machine import (
    GATHERING_VOTES,
    REVEAL,
    STATUS_ORDER,
    CycleRules,
    Transition,
    evaluate_transition,
    is_forward,
    reveal_transition,
    status_rank,
)
from movienight.services.schedule import Schedule, calculate_schedule

logger = logging.getLogger(__name__)


def cycle_rules() -> CycleRules:
    return CycleRules(
        min_yes_decisions=settings.min_yes_decisions,
        min_total_decisions=settings.min_total_decisions,
        underdog_threshold=settings.underdog_boost_threshold,
        reveal_dwell_seconds=settings.reveal_dwell_seconds,
    )


def assert_operator(user_id: str) -> None:
    allowed = settings.admin_user_id_list()
    if allowed and user_id not in allowed:
        raise PermissionError("Only operators may change the cycle status")


def _publish(snapshot: DailyCycleOut) -> None:
    broadcaster.publish(snapshot.id, snapshot.model_dump(mode="json"))


async def _candidate_movies(db: AsyncSession, snapshot: DailyCycleOut):
    ids = {movie_id for movie_ids in snapshot.nominations.values() for movie_id in movie_ids}
    return await cycle_store.shared_movies_for(db, ids)


async def _transition_for(db: AsyncSession, snapshot: DailyCycleOut, now: datetime) -> Transition | None:
    movies = {}
    if snapshot.current_status == GATHERING_VOTES:
        movies = await _candidate_movies(db, snapshot)
    return evaluate_transition(snapshot, rules=cycle_rules(), movies=movies, now=now)


async def sync_cycle(
    db: AsyncSession,
    cycle_id: str,
    *,
    now: datetime | None = None,
    publish: bool = False,
) -> DailyCycleOut:
    """Load (or lazily create) the cycle and apply every automatic transition due.

    Transition writes that fail are logged and dropped: the next read or
    write re-evaluates from scratch.
    """
    now = now or datetime.now(timezone.utc)
    cycle = await cycle_store.get_or_create_cycle(db, cycle_id)
    await db.commit()
    snapshot = cycle_store.snapshot_from_cycle(cycle)

    changed = False
    for _ in STATUS_ORDER:
        transition = await _transition_for(db, snapshot, now)
        if transition is None:
            break
        try:
            applied = await cycle_store.apply_transition(db, cycle_id, transition)
            await db.commit()
        except SQLAlchemyError:
            logger.exception(
                "Failed to advance cycle %s from %s to %s",
                cycle_id,
                transition.source,
                transition.target,
            )
            await db.rollback()
            break

        if applied:
            changed = True
            logger.info("Cycle %s advanced %s -> %s", cycle_id, transition.source, transition.target)

        reloaded = await cycle_store.load_cycle(db, cycle_id)
        if reloaded is None:
            # reset underneath us
            break
        snapshot = cycle_store.snapshot_from_cycle(reloaded)

    if publish or changed:
        _publish(snapshot)
    return snapshot


async def get_current_cycle(db: AsyncSession, *, now: datetime | None = None) -> DailyCycleOut:
    return await sync_cycle(db, cycle_store.current_cycle_id(now), now=now)


async def update_cycle_status(
    db: AsyncSession,
    *,
    cycle_id: str,
    user_id: str,
    status: str,
    now: datetime | None = None,
) -> DailyCycleOut:
    assert_operator(user_id)
    now = now or datetime.now(timezone.utc)

    cycle = await cycle_store.get_or_create_cycle(db, cycle_id)
    snapshot = cycle_store.snapshot_from_cycle(cycle)
    current = snapshot.current_status

    if status == current:
        await db.commit()
        return snapshot
    if not is_forward(current, status):
        raise ValueError("Cycle status can only move forward; reset the cycle instead")

    transition = Transition(source=current, target=status)
    # skipping past the vote still needs a winner
    if status_rank(status) >= status_rank(REVEAL) and status_rank(current) < status_rank(REVEAL):
        movies = await _candidate_movies(db, snapshot)
        transition = dataclasses.replace(
            reveal_transition(snapshot, rules=cycle_rules(), movies=movies, now=now),
            target=status,
        )

    applied = await cycle_store.apply_transition(db, cycle_id, transition)
    await db.commit()
    if applied:
        logger.info("Cycle %s moved %s -> %s by %s", cycle_id, current, status, user_id)
    return await sync_cycle(db, cycle_id, now=now, publish=True)


async def recreate_cycle(db: AsyncSession, cycle_id: str) -> DailyCycleOut:
    """Delete the cycle with all of its participation rows and start it over."""
    existing = await cycle_store.load_cycle(db, cycle_id)
    if existing is not None:
        await db.delete(existing)
        await db.flush()

    db.add(
        DailyCycle(
            id=cycle_id,
            current_status="WAITING_FOR_DECISIONS",
            finish_by_time=settings.default_finish_time,
        )
    )
    await db.commit()

    cycle = await cycle_store.load_cycle(db, cycle_id)
    snapshot = cycle_store.snapshot_from_cycle(cycle)
    _publish(snapshot)
    return snapshot


async def reset_daily_cycle(db: AsyncSession, *, cycle_id: str, user_id: str) -> DailyCycleOut:
    assert_operator(user_id)
    snapshot = await recreate_cycle(db, cycle_id)
    logger.info("Cycle %s reset by %s", cycle_id, user_id)
    return snapshot


async def update_schedule_settings(
    db: AsyncSession,
    *,
    cycle_id: str,
    finish_by_time: str,
) -> DailyCycleOut:
    cycle = await cycle_store.get_or_create_cycle(db, cycle_id)
    cycle.finish_by_time = finish_by_time
    cycle.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return await sync_cycle(db, cycle_id, publish=True)


async def get_current_schedule(
    db: AsyncSession,
    *,
    now: datetime | None = None,
) -> tuple[DailyCycleOut, Schedule]:
    snapshot = await get_current_cycle(db, now=now)
    if snapshot.winning_movie is None:
        raise ValueError("Schedule not available: no winner has been revealed")

    movies = await cycle_store.shared_movies_for(db, {snapshot.winning_movie.movie_id})
    movie = movies.get(snapshot.winning_movie.movie_id)
    if movie is None:
        raise ValueError("Winning movie not found in the shared pool")

    schedule = calculate_schedule(
        movie.runtime_minutes,
        snapshot.schedule_settings.finish_by_time,
        now=cycle_store.local_now(now),
        break_interval_minutes=settings.break_interval_minutes,
        break_duration_minutes=settings.break_duration_minutes,
        boundary_hour=settings.cycle_day_boundary_hour,
    )
    return snapshot, schedule

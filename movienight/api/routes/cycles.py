from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_current_user_id, get_db
from movienight.api.http_errors import (
    CYCLE_PHRASE_STATUSES,
    permission_error,
    store_error,
    value_error,
)
from movienight.api.sse import format_sse
from movienight.core.config import settings
from movienight.db.session import AsyncSessionLocal
from movienight.schemas.cycles import (
    DailyCycleOut,
    DecisionRequest,
    NominationsRequest,
    ScheduleOut,
    ScheduleSettingsRequest,
    StatusUpdateRequest,
    VoteRequest,
)
from movienight.services.cycle_events import broadcaster
from movienight.services.cycle_store import current_cycle_id
from movienight.services.cycles import (
    get_current_cycle,
    get_current_schedule,
    reset_daily_cycle,
    sync_cycle,
    update_cycle_status,
    update_schedule_settings,
)
from movienight.services.participation import make_decision, submit_nominations, submit_vote

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cycles", tags=["cycles"])

SCHEDULE_PHRASE_STATUSES = {
    "not found": 404,
    "no winner": 404,
}


@router.get("/current", response_model=DailyCycleOut)
async def current_cycle_route(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await get_current_cycle(db)


@router.post("/current/decision", response_model=DailyCycleOut)
async def decision_route(
    payload: DecisionRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    cycle_id = current_cycle_id()
    try:
        await make_decision(db, cycle_id=cycle_id, user_id=user_id, will_watch=payload.will_watch)
        await db.commit()
    except ValueError as e:
        raise value_error(e, phrase_statuses=CYCLE_PHRASE_STATUSES) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save decision for %s in cycle %s", user_id, cycle_id)
        raise store_error("decision") from e
    return await sync_cycle(db, cycle_id, publish=True)


@router.post("/current/nominations", response_model=DailyCycleOut)
async def nominations_route(
    payload: NominationsRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    cycle_id = current_cycle_id()
    try:
        await submit_nominations(db, cycle_id=cycle_id, user_id=user_id, movie_ids=payload.movie_ids)
        await db.commit()
    except ValueError as e:
        raise value_error(e, phrase_statuses=CYCLE_PHRASE_STATUSES) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save nominations for %s in cycle %s", user_id, cycle_id)
        raise store_error("nominations") from e
    return await sync_cycle(db, cycle_id, publish=True)


@router.post("/current/vote", response_model=DailyCycleOut)
async def vote_route(
    payload: VoteRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    cycle_id = current_cycle_id()
    try:
        await submit_vote(
            db,
            cycle_id=cycle_id,
            user_id=user_id,
            top_pick=payload.top_pick,
            second_pick=payload.second_pick,
            third_pick=payload.third_pick,
        )
        await db.commit()
    except ValueError as e:
        # "was not nominated" is bad input, not a missing resource
        raise value_error(e, phrase_statuses={"not accepting": 409}) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save vote for %s in cycle %s", user_id, cycle_id)
        raise store_error("vote") from e
    return await sync_cycle(db, cycle_id, publish=True)


@router.patch("/current/status", response_model=DailyCycleOut)
async def status_route(
    payload: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await update_cycle_status(
            db,
            cycle_id=current_cycle_id(),
            user_id=user_id,
            status=payload.status,
        )
    except PermissionError as e:
        raise permission_error(e) from e
    except ValueError as e:
        raise value_error(e, phrase_statuses=CYCLE_PHRASE_STATUSES) from e


@router.post("/current/reset", response_model=DailyCycleOut)
async def reset_route(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await reset_daily_cycle(db, cycle_id=current_cycle_id(), user_id=user_id)
    except PermissionError as e:
        raise permission_error(e) from e


@router.patch("/current/schedule-settings", response_model=DailyCycleOut)
async def schedule_settings_route(
    payload: ScheduleSettingsRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await update_schedule_settings(
        db,
        cycle_id=current_cycle_id(),
        finish_by_time=payload.finish_by_time,
    )


@router.get("/current/schedule", response_model=ScheduleOut)
async def schedule_route(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        snapshot, schedule = await get_current_schedule(db)
    except ValueError as e:
        raise value_error(e, phrase_statuses=SCHEDULE_PHRASE_STATUSES) from e

    return ScheduleOut(
        movie_id=snapshot.winning_movie.movie_id,
        runtime_minutes=schedule.runtime_minutes,
        start_time=schedule.start_time,
        finish_time=schedule.finish_time,
        break_count=schedule.break_count,
        break_total_minutes=schedule.break_total_minutes,
        total_minutes=schedule.total_minutes,
        reminders=schedule.reminders,
    )


async def stream_cycle_events(
    queue: asyncio.Queue,
    *,
    resync: Callable[[], Awaitable[DailyCycleOut]],
    is_disconnected: Callable[[], Awaitable[bool]],
    heartbeat_seconds: float,
) -> AsyncIterator[str]:
    """Yield the current snapshot, then every published snapshot.

    Each heartbeat also re-evaluates the cycle, which is what moves a REVEAL
    past its dwell time when nobody else is reading or writing. The stream
    ends once the day boundary passes; reconnecting subscribes to the new
    cycle.
    """
    snapshot = await resync()
    yield format_sse(snapshot.model_dump(mode="json"), event="cycle")

    while True:
        if await is_disconnected():
            break
        try:
            payload = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
        except asyncio.TimeoutError:
            latest = await resync()
            if latest.id != snapshot.id:
                yield format_sse(latest.model_dump(mode="json"), event="cycle")
                break
            yield ": ping\n\n"
            continue
        yield format_sse(payload, event="cycle")


@router.get("/current/events")
async def cycle_events_route(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> StreamingResponse:
    cycle_id = current_cycle_id()

    async def _resync() -> DailyCycleOut:
        # the request-scoped session is gone once streaming starts
        async with AsyncSessionLocal() as db:
            return await sync_cycle(db, current_cycle_id())

    async def event_generator():
        queue = broadcaster.subscribe(cycle_id)
        try:
            async for frame in stream_cycle_events(
                queue,
                resync=_resync,
                is_disconnected=request.is_disconnected,
                heartbeat_seconds=settings.sse_heartbeat_seconds,
            ):
                yield frame
        finally:
            broadcaster.unsubscribe(cycle_id, queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )

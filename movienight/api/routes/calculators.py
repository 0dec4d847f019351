from __future__ import annotations

from fastapi import APIRouter

from movienight.core.config import settings
from movienight.schemas.cycles import (
    CandidateScoreOut,
    ScheduleCalculateRequest,
    ScheduleOut,
    WinnerCalculateRequest,
    WinnerCalculateResponse,
    WinnerOut,
)
from movienight.services.cycle_store import local_now
from movienight.services.schedule import calculate_schedule
from movienight.services.winner import rank_candidates

router = APIRouter(tags=["calculators"])


@router.post("/winner/calculate", response_model=WinnerCalculateResponse)
async def winner_calculate_route(payload: WinnerCalculateRequest):
    ranked = rank_candidates(
        payload.nominations,
        payload.votes,
        payload.movies,
        underdog_threshold=settings.underdog_boost_threshold,
    )
    winner = WinnerOut(movie_id=str(ranked[0].movie_id), score=ranked[0].score) if ranked else None
    return WinnerCalculateResponse(
        winner=winner,
        ranking=[
            CandidateScoreOut(
                movie_id=str(c.movie_id),
                score=c.score,
                raw_score=c.raw_score,
                boost=c.boost,
                vote_count=c.vote_count,
                runtime_minutes=c.runtime_minutes,
            )
            for c in ranked
        ],
    )


@router.post("/schedule/calculate", response_model=ScheduleOut)
async def schedule_calculate_route(payload: ScheduleCalculateRequest):
    schedule = calculate_schedule(
        payload.runtime_minutes,
        payload.finish_by_time,
        now=local_now(),
        break_interval_minutes=settings.break_interval_minutes,
        break_duration_minutes=settings.break_duration_minutes,
        boundary_hour=settings.cycle_day_boundary_hour,
    )
    return ScheduleOut(
        runtime_minutes=schedule.runtime_minutes,
        start_time=schedule.start_time,
        finish_time=schedule.finish_time,
        break_count=schedule.break_count,
        break_total_minutes=schedule.break_total_minutes,
        total_minutes=schedule.total_minutes,
        reminders=schedule.reminders,
    )

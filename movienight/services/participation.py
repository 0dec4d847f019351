from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.config import settings
from movienight.models.cycle_decision import CycleDecision
from movienight.models.cycle_nomination import CycleNomination
from movienight.models.cycle_vote import CycleVote
from movienight.models.library_movie import LibraryMovie
from movienight.services import cycle_store
from movienight.services.library import share_movie


# ─────────────────────────────────────────────
# Derived counts (read by the cycle state machine)
# ─────────────────────────────────────────────

def yes_count(decisions: Mapping[str, bool]) -> int:
    return sum(1 for decision in decisions.values() if decision is True)


def total_decisions(decisions: Mapping[str, bool]) -> int:
    return len(decisions)


def nominator_count(nominations: Mapping[str, Any]) -> int:
    # an empty list is still a submission
    return len(nominations)


def voter_count(votes: Mapping[str, Any]) -> int:
    return len(votes)


# ─────────────────────────────────────────────
# Per-user writes. Each touches only the caller's row, so writes from
# different users never conflict. Resubmitting overwrites.
# ─────────────────────────────────────────────

async def make_decision(
    db: AsyncSession,
    *,
    cycle_id: str,
    user_id: str,
    will_watch: bool,
) -> None:
    await cycle_store.require_cycle_status(
        db,
        cycle_id,
        {"WAITING_FOR_DECISIONS", "GATHERING_NOMINATIONS"},
        "decisions",
    )

    q = select(CycleDecision).where(CycleDecision.cycle_id == cycle_id, CycleDecision.user_id == user_id)
    existing = (await db.execute(q)).scalar_one_or_none()

    now = datetime.now(timezone.utc)
    if existing:
        existing.will_watch = will_watch
        existing.updated_at = now
    else:
        db.add(CycleDecision(cycle_id=cycle_id, user_id=user_id, will_watch=will_watch, updated_at=now))
    await db.flush()


def _validate_nomination_ids(movie_ids: list[uuid.UUID]) -> None:
    if len(movie_ids) > settings.max_nominations_per_user:
        raise ValueError(f"You can only nominate up to {settings.max_nominations_per_user} movies")
    if len(set(movie_ids)) != len(movie_ids):
        raise ValueError("You cannot nominate the same movie twice")


async def submit_nominations(
    db: AsyncSession,
    *,
    cycle_id: str,
    user_id: str,
    movie_ids: list[uuid.UUID],
) -> list[uuid.UUID]:
    # 1) validate before any write
    _validate_nomination_ids(movie_ids)
    await cycle_store.require_cycle_status(db, cycle_id, {"GATHERING_NOMINATIONS"}, "nominations")

    movies: list[LibraryMovie] = []
    if movie_ids:
        q = select(LibraryMovie).where(
            LibraryMovie.owner_user_id == user_id,
            LibraryMovie.id.in_(movie_ids),
        )
        by_id = {m.id: m for m in (await db.execute(q)).scalars().all()}
        missing = [str(mid) for mid in movie_ids if mid not in by_id]
        if missing:
            raise ValueError(f"Movie not found in your library: {', '.join(missing)}")
        movies = [by_id[mid] for mid in movie_ids]
        for m in movies:
            if not m.runtime_minutes or m.runtime_minutes <= 0:
                raise ValueError(f"Movie runtime data is missing or invalid: {m.title}")

    # 2) streak bumps once per cycle, then copy-on-nominate into the shared pool
    for m in movies:
        if m.last_nominated_cycle_id != cycle_id:
            m.nomination_streak = (m.nomination_streak or 0) + 1
            m.last_nominated_cycle_id = cycle_id
        await share_movie(db, movie=m)

    # 3) upsert the caller's nomination row
    q = select(CycleNomination).where(CycleNomination.cycle_id == cycle_id, CycleNomination.user_id == user_id)
    existing = (await db.execute(q)).scalar_one_or_none()

    now = datetime.now(timezone.utc)
    stored = [str(mid) for mid in movie_ids]
    if existing:
        existing.movie_ids = stored
        existing.updated_at = now
    else:
        db.add(CycleNomination(cycle_id=cycle_id, user_id=user_id, movie_ids=stored, updated_at=now))
    await db.flush()
    return list(movie_ids)


async def submit_vote(
    db: AsyncSession,
    *,
    cycle_id: str,
    user_id: str,
    top_pick: uuid.UUID | None,
    second_pick: uuid.UUID | None,
    third_pick: uuid.UUID | None,
) -> None:
    picks = [p for p in (top_pick, second_pick, third_pick) if p is not None]
    if len(set(picks)) != len(picks):
        raise ValueError("You cannot vote for the same movie multiple times")

    cycle = await cycle_store.require_cycle_status(db, cycle_id, {"GATHERING_VOTES"}, "votes")

    candidates = {
        str(movie_id)
        for n in cycle.nominations
        for movie_id in (n.movie_ids or [])
    }
    for pick in picks:
        if str(pick) not in candidates:
            raise ValueError(f"Movie {pick} was not nominated tonight")

    q = select(CycleVote).where(CycleVote.cycle_id == cycle_id, CycleVote.user_id == user_id)
    existing = (await db.execute(q)).scalar_one_or_none()

    now = datetime.now(timezone.utc)
    if existing:
        existing.top_pick = top_pick
        existing.second_pick = second_pick
        existing.third_pick = third_pick
        existing.updated_at = now
        await db.flush()
        return

    db.add(
        CycleVote(
            cycle_id=cycle_id,
            user_id=user_id,
            top_pick=top_pick,
            second_pick=second_pick,
            third_pick=third_pick,
            updated_at=now,
        )
    )
    await db.flush()

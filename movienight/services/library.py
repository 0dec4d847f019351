from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.models.library_movie import LibraryMovie
from movienight.models.shared_movie import SharedMovie
from movienight.schemas.catalog import CatalogMovie
from movienight.services.catalog import get_movie_details

FALLBACK_POSTER_URL = (
    "https://images.pexels.com/photos/7991579/pexels-photo-7991579.jpeg"
    "?auto=compress&cs=tinysrgb&w=400"
)


async def list_library(db: AsyncSession, *, user_id: str) -> list[LibraryMovie]:
    q = (
        select(LibraryMovie)
        .where(LibraryMovie.owner_user_id == user_id)
        .order_by(LibraryMovie.added_at.desc(), LibraryMovie.title.asc())
    )
    return list((await db.execute(q)).scalars().all())


async def _owned_movie(db: AsyncSession, *, user_id: str, movie_id: uuid.UUID) -> LibraryMovie:
    q = select(LibraryMovie).where(LibraryMovie.id == movie_id, LibraryMovie.owner_user_id == user_id)
    movie = (await db.execute(q)).scalar_one_or_none()
    if not movie:
        raise ValueError("Movie not found in your library")
    return movie


async def add_library_movie(
    db: AsyncSession,
    *,
    user_id: str,
    catalog_id: str,
    catalog_movie: CatalogMovie | None = None,
) -> LibraryMovie:
    movie = catalog_movie
    if movie is None or not movie.has_runtime():
        movie = await get_movie_details(catalog_id)
    if movie is None:
        raise ValueError("Movie not found")
    if not movie.has_runtime():
        raise ValueError("Movie runtime data is missing or invalid")

    q = select(LibraryMovie.id).where(
        LibraryMovie.owner_user_id == user_id,
        LibraryMovie.catalog_id == catalog_id,
    )
    if (await db.execute(q)).scalar_one_or_none() is not None:
        raise ValueError("Movie is already in your library")

    item = LibraryMovie(
        owner_user_id=user_id,
        catalog_id=catalog_id,
        title=movie.title,
        poster_url=movie.poster or FALLBACK_POSTER_URL,
        runtime_minutes=movie.runtime,
        release_year=movie.release_year or datetime.now(timezone.utc).year,
        genres=list(movie.genres),
        description=movie.description or "",
        nomination_streak=0,
    )
    db.add(item)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ValueError("Movie is already in your library") from exc

    await db.refresh(item)
    return item


async def remove_library_movie(db: AsyncSession, *, user_id: str, movie_id: uuid.UUID) -> None:
    movie = await _owned_movie(db, user_id=user_id, movie_id=movie_id)
    await db.delete(movie)
    await db.flush()


async def update_nomination_streak(
    db: AsyncSession,
    *,
    user_id: str,
    movie_id: uuid.UUID,
    streak: int,
) -> LibraryMovie:
    if streak < 0:
        raise ValueError("nomination_streak must be >= 0")
    movie = await _owned_movie(db, user_id=user_id, movie_id=movie_id)
    movie.nomination_streak = streak

    # keep the shared copy in step so the next tally sees the same streak
    shared = await db.get(SharedMovie, movie.id)
    if shared is not None:
        shared.nomination_streak = streak

    await db.flush()
    return movie


async def share_movie(db: AsyncSession, *, movie: LibraryMovie) -> SharedMovie:
    """Copy a library movie into the pool every participant can see."""
    now = datetime.now(timezone.utc)
    shared = await db.get(SharedMovie, movie.id)
    if shared is None:
        shared = SharedMovie(id=movie.id, original_owner_user_id=movie.owner_user_id)
        db.add(shared)

    shared.catalog_id = movie.catalog_id
    shared.title = movie.title
    shared.poster_url = movie.poster_url
    shared.runtime_minutes = movie.runtime_minutes
    shared.release_year = movie.release_year
    shared.genres = list(movie.genres or [])
    shared.description = movie.description
    shared.nomination_streak = movie.nomination_streak or 0
    shared.shared_at = now
    return shared


async def list_shared_movies(db: AsyncSession) -> list[SharedMovie]:
    q = select(SharedMovie).order_by(SharedMovie.shared_at.desc(), SharedMovie.title.asc())
    return list((await db.execute(q)).scalars().all())

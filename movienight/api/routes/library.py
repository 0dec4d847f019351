from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_current_user_id, get_db
from movienight.api.http_errors import LIBRARY_PHRASE_STATUSES, upstream_error, value_error
from movienight.models.library_movie import LibraryMovie
from movienight.models.shared_movie import SharedMovie
from movienight.schemas.library import (
    AddLibraryMovieRequest,
    LibraryMovieOut,
    SharedMovieOut,
    StreakUpdateRequest,
)
from movienight.services.catalog import CatalogError
from movienight.services.library import (
    add_library_movie,
    list_library,
    list_shared_movies,
    remove_library_movie,
    update_nomination_streak,
)

router = APIRouter(tags=["library"])


def to_out(movie: LibraryMovie) -> LibraryMovieOut:
    return LibraryMovieOut(
        id=movie.id,
        catalog_id=movie.catalog_id,
        title=movie.title,
        poster_url=movie.poster_url,
        runtime_minutes=movie.runtime_minutes,
        release_year=movie.release_year,
        genres=list(movie.genres or []),
        description=movie.description,
        nomination_streak=movie.nomination_streak or 0,
        added_at=movie.added_at,
    )


def shared_to_out(movie: SharedMovie) -> SharedMovieOut:
    return SharedMovieOut(
        id=movie.id,
        catalog_id=movie.catalog_id,
        title=movie.title,
        poster_url=movie.poster_url,
        runtime_minutes=movie.runtime_minutes,
        release_year=movie.release_year,
        genres=list(movie.genres or []),
        description=movie.description,
        nomination_streak=movie.nomination_streak or 0,
        original_owner=movie.original_owner_user_id,
        shared_at=movie.shared_at,
    )


@router.get("/library", response_model=list[LibraryMovieOut])
async def list_library_route(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return [to_out(m) for m in await list_library(db, user_id=user_id)]


@router.post("/library", response_model=LibraryMovieOut, status_code=201)
async def add_library_route(
    payload: AddLibraryMovieRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        movie = await add_library_movie(db, user_id=user_id, catalog_id=payload.catalog_id)
        await db.commit()
        return to_out(movie)
    except CatalogError as e:
        raise upstream_error(e) from e
    except ValueError as e:
        raise value_error(e, phrase_statuses=LIBRARY_PHRASE_STATUSES) from e


@router.delete("/library/{movie_id}", status_code=204)
async def remove_library_route(
    movie_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        await remove_library_movie(db, user_id=user_id, movie_id=movie_id)
        await db.commit()
    except ValueError as e:
        raise value_error(e, phrase_statuses=LIBRARY_PHRASE_STATUSES) from e
    return Response(status_code=204)


@router.patch("/library/{movie_id}/streak", response_model=LibraryMovieOut)
async def update_streak_route(
    movie_id: UUID,
    payload: StreakUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        movie = await update_nomination_streak(
            db,
            user_id=user_id,
            movie_id=movie_id,
            streak=payload.nomination_streak,
        )
        await db.commit()
        return to_out(movie)
    except ValueError as e:
        raise value_error(e, phrase_statuses=LIBRARY_PHRASE_STATUSES) from e


@router.get("/shared-movies", response_model=list[SharedMovieOut])
async def list_shared_movies_route(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return [shared_to_out(m) for m in await list_shared_movies(db)]

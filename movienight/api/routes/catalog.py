from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from movienight.api.deps import get_current_user_id
from movienight.api.http_errors import upstream_error, value_error
from movienight.schemas.catalog import CatalogMovie, CatalogPage, CatalogSearchResponse
from movienight.services.catalog import (
    MAX_DISCOVER_PAGE,
    CatalogError,
    discover_movies,
    get_movie_details,
    search_movies,
    trending_movies,
)

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/search", response_model=CatalogSearchResponse)
async def catalog_search_route(
    q: str = Query(..., min_length=1, max_length=200),
    user_id: str = Depends(get_current_user_id),
):
    try:
        results = await search_movies(q)
    except CatalogError as e:
        raise upstream_error(e) from e

    # only movies with a known runtime can be scheduled
    items = [m for m in results if m.has_runtime()]
    dropped = len(results) - len(items)
    message = None
    if results and not items:
        message = "No movies with runtime information found. Try a different search term."
    return CatalogSearchResponse(items=items, dropped_without_runtime=dropped, message=message)


@router.get("/trending", response_model=CatalogPage)
async def catalog_trending_route(user_id: str = Depends(get_current_user_id)):
    try:
        return await trending_movies()
    except CatalogError as e:
        raise upstream_error(e) from e


@router.get("/discover", response_model=CatalogPage)
async def catalog_discover_route(
    provider: list[int] = Query(default=[]),
    genre: list[int] = Query(default=[]),
    year_from: int | None = Query(default=None, ge=1870, le=2100),
    year_to: int | None = Query(default=None, ge=1870, le=2100),
    min_rating: float | None = Query(default=None, ge=0, le=10),
    sort_by: str = Query(default="popularity.desc"),
    page: int = Query(default=1, ge=1, le=MAX_DISCOVER_PAGE),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await discover_movies(
            provider_ids=provider,
            genre_ids=genre,
            year_from=year_from,
            year_to=year_to,
            min_rating=min_rating,
            sort_by=sort_by,
            page=page,
        )
    except ValueError as e:
        raise value_error(e) from e
    except CatalogError as e:
        raise upstream_error(e) from e


@router.get("/movies/{catalog_id}", response_model=CatalogMovie)
async def catalog_movie_route(
    catalog_id: str,
    user_id: str = Depends(get_current_user_id),
):
    try:
        movie = await get_movie_details(catalog_id)
    except CatalogError as e:
        raise upstream_error(e) from e
    if movie is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return movie

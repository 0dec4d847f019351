from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from movienight.core.config import settings
from movienight.schemas.catalog import CatalogMovie, CatalogPage, StreamingProvider

logger = logging.getLogger(__name__)

TMDB_API_BASE = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/w500"

# Search results and detail payloads share this in-memory cache.
_CACHE: dict[str, tuple[float, Any]] = {}
_TTL_SECONDS = 600
_STREAMING_BUCKETS = ("flatrate", "ads", "free")
_EXCLUDED_STREAMING_PROVIDER_NAMES = {
    "netflix standard with ads",
}
DISCOVER_SORTS = ("popularity.desc", "release_date.desc", "vote_average.desc")
# TMDB refuses pages past this
MAX_DISCOVER_PAGE = 500


class CatalogError(RuntimeError):
    pass


def _cache_get(key: str):
    hit = _CACHE.get(key)
    if not hit:
        return None
    expires_at, value = hit
    if time.time() > expires_at:
        _CACHE.pop(key, None)
        return None
    return value


def _cache_set(key: str, value):
    _CACHE[key] = (time.time() + _TTL_SECONDS, value)


def _client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=TMDB_API_BASE, timeout=timeout)


def _headers() -> dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.tmdb_token}",
        "Accept": "application/json",
    }


def _safe_int(value: Any) -> int | None:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _year_from_date(value: Any) -> int | None:
    if isinstance(value, str) and len(value) >= 4 and value[:4].isdigit():
        return int(value[:4])
    return None


def _rating(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _poster_url(poster_path: Any) -> str | None:
    if isinstance(poster_path, str) and poster_path.strip():
        return f"{TMDB_IMAGE_BASE}{poster_path}"
    return None


def _movie_from_search_row(item: dict[str, Any]) -> CatalogMovie | None:
    tmdb_id = item.get("id")
    title = item.get("title") or item.get("original_title") or ""
    if not tmdb_id or not title:
        return None
    overview = item.get("overview")
    return CatalogMovie(
        id=str(tmdb_id),
        title=title,
        release_year=_year_from_date(item.get("release_date")),
        poster=_poster_url(item.get("poster_path")),
        description=overview if isinstance(overview, str) and overview.strip() else None,
        vote_average=_rating(item.get("vote_average")),
        enrichment="pending",
    )


def _movies_from_rows(rows: Any) -> list[CatalogMovie]:
    movies = []
    for item in rows if isinstance(rows, list) else []:
        if not isinstance(item, dict):
            continue
        movie = _movie_from_search_row(item)
        if movie is not None:
            movies.append(movie)
    return movies


def _dedupe_streaming_providers(region_payload: dict[str, Any]) -> list[StreamingProvider]:
    deduped: dict[str, StreamingProvider] = {}
    for bucket in _STREAMING_BUCKETS:
        rows = region_payload.get(bucket)
        if not isinstance(rows, list):
            continue
        for row in rows:
            if not isinstance(row, dict):
                continue
            name = row.get("provider_name")
            if not isinstance(name, str) or not name.strip():
                continue
            normalized = name.strip()
            if normalized.lower() in _EXCLUDED_STREAMING_PROVIDER_NAMES:
                continue
            provider_id = _safe_int(row.get("provider_id"))
            key = str(provider_id) if provider_id is not None else normalized.lower()
            if key in deduped:
                continue
            deduped[key] = StreamingProvider(
                provider_id=provider_id,
                provider_name=normalized,
                logo_path=row.get("logo_path") if isinstance(row.get("logo_path"), str) else None,
                display_priority=_safe_int(row.get("display_priority")),
            )

    providers = list(deduped.values())
    providers.sort(
        key=lambda p: (
            p.display_priority if isinstance(p.display_priority, int) else 9999,
            p.provider_name,
        )
    )
    return providers


def _merge_details(movie: CatalogMovie, data: dict[str, Any], region: str) -> CatalogMovie:
    runtime = data.get("runtime")
    genre_rows = [g for g in data.get("genres", []) if isinstance(g, dict)]
    genres = [g["name"].strip() for g in genre_rows if isinstance(g.get("name"), str) and g["name"].strip()]

    providers_node = data.get("watch/providers")
    results = providers_node.get("results") if isinstance(providers_node, dict) else None
    region_payload = results.get(region) if isinstance(results, dict) else None
    providers = _dedupe_streaming_providers(region_payload if isinstance(region_payload, dict) else {})

    overview = data.get("overview")
    return movie.model_copy(
        update={
            "title": data.get("title") or movie.title,
            "runtime": runtime if isinstance(runtime, int) and runtime > 0 else None,
            "release_year": _year_from_date(data.get("release_date")) or movie.release_year,
            "genres": genres,
            "poster": _poster_url(data.get("poster_path")) or movie.poster,
            "description": overview if isinstance(overview, str) and overview.strip() else movie.description,
            "streaming_providers": providers,
            "is_streamable": bool(providers),
            "vote_average": _rating(data.get("vote_average")) or movie.vote_average,
            "enrichment": "complete",
        }
    )


async def _fetch_details_payload(client: httpx.AsyncClient, catalog_id: str) -> dict[str, Any]:
    key = f"details:{catalog_id}"
    cached = _cache_get(key)
    if isinstance(cached, dict):
        return cached

    r = await client.get(
        f"/movie/{catalog_id}",
        params={"append_to_response": "watch/providers"},
        headers=_headers(),
    )
    r.raise_for_status()
    data = r.json()
    if not isinstance(data, dict):
        raise ValueError("Unexpected TMDB details payload")
    _cache_set(key, data)
    return data


async def enrich_movie(client: httpx.AsyncClient, movie: CatalogMovie) -> CatalogMovie:
    try:
        data = await _fetch_details_payload(client, movie.id)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("TMDB details lookup failed for %s: %s", movie.id, exc)
        return movie.model_copy(update={"enrichment": "failed"})
    return _merge_details(movie, data, settings.catalog_region)


async def search_movies(query: str) -> list[CatalogMovie]:
    query = query.strip()
    if not query:
        return []
    if settings.env == "test":
        return []

    key = f"search:{settings.catalog_region}:{query.lower()}"
    cached = _cache_get(key)
    if cached is not None:
        return [CatalogMovie.model_validate(row) for row in cached]

    async with _client(10) as client:
        try:
            r = await client.get(
                "/search/movie",
                params={"query": query, "region": settings.catalog_region},
                headers=_headers(),
            )
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogError("Failed to search movies. Please try again.") from exc

        hits = _movies_from_rows(data.get("results") if isinstance(data, dict) else None)
        hits = hits[: settings.search_results_limit]

        # runtime only comes with the details payload
        out = list(await asyncio.gather(*[enrich_movie(client, m) for m in hits]))

    _cache_set(key, [m.model_dump() for m in out])
    return out


async def get_movie_details(catalog_id: str) -> CatalogMovie | None:
    catalog_id = catalog_id.strip()
    if not catalog_id.isdigit():
        return None
    if settings.env == "test":
        return None

    async with _client(6) as client:
        try:
            data = await _fetch_details_payload(client, catalog_id)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                return None
            raise CatalogError("Failed to load movie details. Please try again.") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogError("Failed to load movie details. Please try again.") from exc

    base = _movie_from_search_row(data)
    if base is None:
        return None
    return _merge_details(base, data, settings.catalog_region)


def _browsable(movies: list[CatalogMovie]) -> list[CatalogMovie]:
    # browsing only offers what can be scheduled and streamed tonight
    return [m for m in movies if m.has_runtime() and m.is_streamable]


def _by_rating(movies: list[CatalogMovie]) -> list[CatalogMovie]:
    return sorted(movies, key=lambda m: -(m.vote_average or 0))


async def _fetch_page(path: str, params: dict[str, Any], *, failure: str) -> tuple[list[CatalogMovie], int, int]:
    async with _client(10) as client:
        try:
            r = await client.get(path, params=params, headers=_headers())
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogError(failure) from exc
        if not isinstance(data, dict):
            raise CatalogError(failure)

        hits = _movies_from_rows(data.get("results"))
        enriched = list(await asyncio.gather(*[enrich_movie(client, m) for m in hits]))

    page = _safe_int(data.get("page")) or 1
    total_pages = _safe_int(data.get("total_pages")) or 1
    return _browsable(enriched), page, total_pages


async def trending_movies() -> CatalogPage:
    """This week's trending movies, best rated first."""
    if settings.env == "test":
        return CatalogPage(items=[])

    key = f"trending:{settings.catalog_region}"
    cached = _cache_get(key)
    if cached is not None:
        return CatalogPage.model_validate(cached)

    movies, _, _ = await _fetch_page(
        "/trending/movie/week",
        {"region": settings.catalog_region},
        failure="Failed to load trending movies. Please try again.",
    )
    result = CatalogPage(items=_by_rating(movies)[: settings.trending_results_limit])
    _cache_set(key, result.model_dump())
    return result


def discover_params(
    *,
    provider_ids: list[int] | None = None,
    genre_ids: list[int] | None = None,
    year_from: int | None = None,
    year_to: int | None = None,
    min_rating: float | None = None,
    sort_by: str = "popularity.desc",
    page: int = 1,
) -> dict[str, Any]:
    """Translate browse filters into TMDB ``/discover/movie`` query params.

    Providers are OR-ed (``|``), genres AND-ed (``,``), matching how TMDB
    reads the two lists. Raises ValueError for filters TMDB would reject.
    """
    if sort_by not in DISCOVER_SORTS:
        raise ValueError(f"Unsupported sort order: {sort_by}")
    if page < 1 or page > MAX_DISCOVER_PAGE:
        raise ValueError(f"Page must be between 1 and {MAX_DISCOVER_PAGE}")
    if year_from is not None and year_to is not None and year_from > year_to:
        raise ValueError("year_from must not be after year_to")
    if min_rating is not None and not 0 <= min_rating <= 10:
        raise ValueError("min_rating must be between 0 and 10")

    region = settings.catalog_region
    params: dict[str, Any] = {
        "region": region,
        "watch_region": region,
        "sort_by": sort_by,
        "page": page,
    }
    if provider_ids:
        params["with_watch_providers"] = "|".join(str(p) for p in provider_ids)
    if genre_ids:
        params["with_genres"] = ",".join(str(g) for g in genre_ids)
    if year_from is not None:
        params["primary_release_date.gte"] = f"{year_from}-01-01"
    if year_to is not None:
        params["primary_release_date.lte"] = f"{year_to}-12-31"
    if min_rating:
        params["vote_average.gte"] = min_rating
    return params


async def discover_movies(**filters: Any) -> CatalogPage:
    """One page of movies matching the browse filters, in TMDB's sort order.

    Accepts the keyword arguments of ``discover_params``.
    """
    params = discover_params(**filters)
    if settings.env == "test":
        return CatalogPage(items=[], page=params["page"])

    key = "discover:" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))
    cached = _cache_get(key)
    if cached is not None:
        return CatalogPage.model_validate(cached)

    movies, page, total_pages = await _fetch_page(
        "/discover/movie",
        params,
        failure="Failed to browse movies. Please try again.",
    )
    result = CatalogPage(items=movies, page=page, total_pages=total_pages)
    _cache_set(key, result.model_dump())
    return result

import httpx
import pytest

from movienight.core.config import settings
from movienight.schemas.catalog import CatalogMovie, CatalogPage
from movienight.services import catalog as catalog_service
from movienight.services.catalog import (
    _dedupe_streaming_providers,
    _merge_details,
    _movie_from_search_row,
    discover_params,
)


def test_dedupe_streaming_providers_ignores_rent_and_buy():
    payload = {
        "flatrate": [
            {
                "provider_id": 8,
                "provider_name": "Netflix",
                "logo_path": "/netflix.png",
                "display_priority": 2,
            },
            {
                "provider_id": 1796,
                "provider_name": "Netflix Standard with Ads",
                "logo_path": "/netflix-ads.png",
                "display_priority": 3,
            },
        ],
        "ads": [
            {
                "provider_id": 73,
                "provider_name": "Tubi TV",
                "logo_path": "/tubi.png",
                "display_priority": 7,
            }
        ],
        "free": [
            {
                "provider_id": 8,
                "provider_name": "Netflix",
                "logo_path": "/netflix.png",
                "display_priority": 2,
            }
        ],
        "rent": [
            {
                "provider_id": 2,
                "provider_name": "Apple TV Store",
                "logo_path": "/apple.png",
                "display_priority": 1,
            }
        ],
    }

    providers = _dedupe_streaming_providers(payload)
    assert [p.provider_name for p in providers] == ["Netflix", "Tubi TV"]


def test_search_row_starts_pending():
    movie = _movie_from_search_row(
        {"id": 603, "title": "The Matrix", "release_date": "1999-03-30", "poster_path": "/m.jpg", "overview": "  "}
    )
    assert movie.id == "603"
    assert movie.release_year == 1999
    assert movie.poster == "https://image.tmdb.org/t/p/w500/m.jpg"
    assert movie.description is None
    assert movie.enrichment == "pending"
    assert movie.has_runtime() is False


def test_search_row_without_id_or_title_is_skipped():
    assert _movie_from_search_row({"title": "No id"}) is None
    assert _movie_from_search_row({"id": 1}) is None


def test_merge_details_completes_the_record():
    base = CatalogMovie(id="603", title="The Matrix")
    details = {
        "runtime": 136,
        "genres": [{"id": 28, "name": "Action"}, {"id": 0, "name": " "}],
        "overview": "Wake up.",
        "watch/providers": {
            "results": {
                "CA": {"flatrate": [{"provider_id": 8, "provider_name": "Netflix", "display_priority": 1}]},
                "US": {"flatrate": [{"provider_id": 15, "provider_name": "Hulu"}]},
            }
        },
    }

    movie = _merge_details(base, details, "CA")
    assert movie.enrichment == "complete"
    assert movie.runtime == 136
    assert movie.genres == ["Action"]
    assert movie.description == "Wake up."
    assert [p.provider_name for p in movie.streaming_providers] == ["Netflix"]
    assert movie.is_streamable is True


def test_merge_details_drops_non_positive_runtime():
    movie = _merge_details(CatalogMovie(id="1", title="Short"), {"runtime": 0}, "CA")
    assert movie.runtime is None
    assert movie.is_streamable is False


@pytest.mark.anyio
async def test_no_network_in_test_env():
    assert await catalog_service.search_movies("matrix") == []
    assert await catalog_service.get_movie_details("603") is None


@pytest.mark.anyio
async def test_search_route_filters_movies_without_runtime(client, monkeypatch):
    async def _search(query: str):
        return [
            CatalogMovie(id="1", title="Known", runtime=100, enrichment="complete"),
            CatalogMovie(id="2", title="Unknown", enrichment="failed"),
        ]

    monkeypatch.setattr("movienight.api.routes.catalog.search_movies", _search)

    r = await client.get("/catalog/search", params={"q": "anything"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert [m["id"] for m in body["items"]] == ["1"]
    assert body["dropped_without_runtime"] == 1
    assert body["message"] is None


@pytest.mark.anyio
async def test_search_route_explains_when_everything_was_dropped(client, monkeypatch):
    async def _search(query: str):
        return [CatalogMovie(id="2", title="Unknown", enrichment="failed")]

    monkeypatch.setattr("movienight.api.routes.catalog.search_movies", _search)

    body = (await client.get("/catalog/search", params={"q": "anything"})).json()
    assert body["items"] == []
    assert "runtime" in body["message"]


@pytest.mark.anyio
async def test_catalog_movie_not_found(client):
    r = await client.get("/catalog/movies/603")
    assert r.status_code == 404


def _tmdb_stub(monkeypatch, results: list[dict], details: dict[str, dict], seen: list[httpx.Request]):
    """Serve list and details payloads from memory instead of TMDB."""

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if path.startswith("/3/movie/"):
            movie_id = path.rsplit("/", 1)[-1]
            if movie_id not in details:
                return httpx.Response(404, json={"status_message": "not found"})
            return httpx.Response(200, json=details[movie_id])
        return httpx.Response(200, json={"page": 2, "total_pages": 7, "results": results})

    def _client(timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=catalog_service.TMDB_API_BASE,
            timeout=timeout,
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(settings, "env", "local")
    monkeypatch.setattr(catalog_service, "_client", _client)
    monkeypatch.setattr(catalog_service, "_CACHE", {})


def _details(runtime: int, *, streaming: bool = True) -> dict:
    flatrate = [{"provider_id": 8, "provider_name": "Netflix", "display_priority": 1}] if streaming else []
    return {"runtime": runtime, "watch/providers": {"results": {"CA": {"flatrate": flatrate}}}}


def test_discover_params_build_tmdb_filters():
    params = discover_params(
        provider_ids=[8, 337],
        genre_ids=[28, 35],
        year_from=1990,
        year_to=1999,
        min_rating=7.5,
        sort_by="vote_average.desc",
        page=3,
    )
    assert params == {
        "region": "CA",
        "watch_region": "CA",
        "sort_by": "vote_average.desc",
        "page": 3,
        "with_watch_providers": "8|337",
        "with_genres": "28,35",
        "primary_release_date.gte": "1990-01-01",
        "primary_release_date.lte": "1999-12-31",
        "vote_average.gte": 7.5,
    }


def test_discover_params_defaults_and_rejections():
    assert discover_params() == {"region": "CA", "watch_region": "CA", "sort_by": "popularity.desc", "page": 1}

    with pytest.raises(ValueError, match="sort order"):
        discover_params(sort_by="revenue.desc")
    with pytest.raises(ValueError, match="year_from"):
        discover_params(year_from=2001, year_to=1999)
    with pytest.raises(ValueError, match="Page"):
        discover_params(page=0)


@pytest.mark.anyio
async def test_trending_keeps_streamable_movies_best_rated_first(monkeypatch):
    seen: list[httpx.Request] = []
    results = [
        {"id": 1, "title": "Fine", "vote_average": 6.1},
        {"id": 2, "title": "Great", "vote_average": 8.4},
        {"id": 3, "title": "Rental only", "vote_average": 9.0},
        {"id": 4, "title": "No runtime", "vote_average": 7.0},
        {"id": 5, "title": "Gone", "vote_average": 9.5},
    ]
    details = {
        "1": _details(100),
        "2": _details(130),
        "3": _details(95, streaming=False),
        "4": _details(0),
    }
    _tmdb_stub(monkeypatch, results, details, seen)

    page = await catalog_service.trending_movies()
    assert [m.title for m in page.items] == ["Great", "Fine"]
    assert page.items[0].runtime == 130
    assert seen[0].url.path == "/3/trending/movie/week"
    assert seen[0].url.params["region"] == "CA"

    # second call is served from the cache
    calls = len(seen)
    again = await catalog_service.trending_movies()
    assert again == page
    assert len(seen) == calls


@pytest.mark.anyio
async def test_discover_pages_through_tmdb_in_its_own_order(monkeypatch):
    seen: list[httpx.Request] = []
    results = [
        {"id": 1, "title": "Lower rated", "vote_average": 5.0},
        {"id": 2, "title": "Higher rated", "vote_average": 9.0},
    ]
    _tmdb_stub(monkeypatch, results, {"1": _details(90), "2": _details(110)}, seen)

    page = await catalog_service.discover_movies(provider_ids=[8], genre_ids=[27], page=2)
    assert [m.title for m in page.items] == ["Lower rated", "Higher rated"]
    assert (page.page, page.total_pages) == (2, 7)

    query = seen[0].url.params
    assert seen[0].url.path == "/3/discover/movie"
    assert query["with_watch_providers"] == "8"
    assert query["with_genres"] == "27"
    assert query["watch_region"] == "CA"
    assert query["page"] == "2"


@pytest.mark.anyio
async def test_browse_upstream_failure_is_a_catalog_error(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    monkeypatch.setattr(settings, "env", "local")
    monkeypatch.setattr(catalog_service, "_CACHE", {})
    monkeypatch.setattr(
        catalog_service,
        "_client",
        lambda timeout: httpx.AsyncClient(
            base_url=catalog_service.TMDB_API_BASE,
            transport=httpx.MockTransport(handler),
        ),
    )

    with pytest.raises(catalog_service.CatalogError):
        await catalog_service.discover_movies()


@pytest.mark.anyio
async def test_trending_route(client, monkeypatch):
    async def _trending():
        return CatalogPage(items=[CatalogMovie(id="9", title="Hot", runtime=101, is_streamable=True)])

    monkeypatch.setattr("movienight.api.routes.catalog.trending_movies", _trending)

    r = await client.get("/catalog/trending")
    assert r.status_code == 200, r.text
    assert [m["id"] for m in r.json()["items"]] == ["9"]


@pytest.mark.anyio
async def test_discover_route_passes_filters(client, monkeypatch):
    received = {}

    async def _discover(**filters):
        received.update(filters)
        return CatalogPage(items=[], page=filters["page"], total_pages=4)

    monkeypatch.setattr("movienight.api.routes.catalog.discover_movies", _discover)

    r = await client.get(
        "/catalog/discover",
        params={"provider": 8, "genre": [28, 35], "year_from": 1980, "min_rating": 6, "page": 2},
    )
    assert r.status_code == 200, r.text
    assert r.json() == {"items": [], "page": 2, "total_pages": 4}
    assert received["provider_ids"] == [8]
    assert received["genre_ids"] == [28, 35]
    assert received["year_from"] == 1980
    assert received["sort_by"] == "popularity.desc"


@pytest.mark.anyio
async def test_discover_route_rejects_bad_filters(client):
    r = await client.get("/catalog/discover", params={"sort_by": "revenue.desc"})
    assert r.status_code == 400
    assert "sort order" in r.json()["detail"]

    r = await client.get("/catalog/discover", params={"page": 0})
    assert r.status_code == 422


@pytest.mark.anyio
async def test_browse_in_test_env_makes_no_network_call():
    assert (await catalog_service.trending_movies()).items == []
    page = await catalog_service.discover_movies(page=3)
    assert page.items == []
    assert page.page == 3

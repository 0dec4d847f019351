from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

EnrichmentStatus = Literal["pending", "complete", "failed"]


class StreamingProvider(BaseModel):
    provider_id: int | None = None
    provider_name: str
    logo_path: str | None = None
    display_priority: int | None = None


class CatalogMovie(BaseModel):
    """One movie record regardless of which TMDB payloads have been merged in.

    Search hits start ``pending``; a details lookup moves them to ``complete``
    (or ``failed`` when TMDB could not be reached), instead of callers probing
    for missing keys.
    """

    id: str
    title: str
    runtime: int | None = None
    release_year: int | None = None
    genres: list[str] = Field(default_factory=list)
    poster: str | None = None
    description: str | None = None
    streaming_providers: list[StreamingProvider] = Field(default_factory=list)
    is_streamable: bool = False
    vote_average: float | None = None
    enrichment: EnrichmentStatus = "pending"

    def has_runtime(self) -> bool:
        return isinstance(self.runtime, int) and self.runtime > 0


class CatalogSearchResponse(BaseModel):
    items: list[CatalogMovie]
    dropped_without_runtime: int = 0
    message: str | None = None


class CatalogPage(BaseModel):
    items: list[CatalogMovie]
    page: int = 1
    total_pages: int = 1

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class LibraryMovieOut(BaseModel):
    id: UUID
    catalog_id: str
    title: str
    poster_url: str | None = None
    runtime_minutes: int
    release_year: int | None = None
    genres: list[str] = Field(default_factory=list)
    description: str | None = None
    nomination_streak: int = 0
    added_at: datetime


class SharedMovieOut(BaseModel):
    id: UUID
    catalog_id: str
    title: str
    poster_url: str | None = None
    runtime_minutes: int
    release_year: int | None = None
    genres: list[str] = Field(default_factory=list)
    description: str | None = None
    nomination_streak: int = 0
    original_owner: str
    shared_at: datetime


class AddLibraryMovieRequest(BaseModel):
    catalog_id: str = Field(min_length=1, max_length=50, pattern=r"^\d+$")


class StreakUpdateRequest(BaseModel):
    nomination_streak: int = Field(ge=0)

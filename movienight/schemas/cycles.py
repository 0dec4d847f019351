from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from movienight.services.schedule import parse_finish_by

CycleStatus = Literal[
    "WAITING_FOR_DECISIONS",
    "GATHERING_NOMINATIONS",
    "GATHERING_VOTES",
    "REVEAL",
    "DASHBOARD_VIEW",
]


class VotePicks(BaseModel):
    top_pick: UUID | None = None
    second_pick: UUID | None = None
    third_pick: UUID | None = None

    @field_validator("top_pick", "second_pick", "third_pick", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def picks(self) -> list[UUID]:
        return [p for p in (self.top_pick, self.second_pick, self.third_pick) if p is not None]


class WinningMovieOut(BaseModel):
    movie_id: UUID
    score: int


class ScheduleSettingsOut(BaseModel):
    finish_by_time: str = "03:30"


class DailyCycleOut(BaseModel):
    id: str
    current_status: CycleStatus
    decisions: dict[str, bool] = Field(default_factory=dict)
    nominations: dict[str, list[UUID]] = Field(default_factory=dict)
    votes: dict[str, VotePicks] = Field(default_factory=dict)
    winning_movie: WinningMovieOut | None = None
    schedule_settings: ScheduleSettingsOut = Field(default_factory=ScheduleSettingsOut)
    dashboard_due_at: datetime | None = None
    created_at: datetime


class DecisionRequest(BaseModel):
    will_watch: bool


class NominationsRequest(BaseModel):
    movie_ids: list[UUID] = Field(default_factory=list)


class VoteRequest(VotePicks):
    @model_validator(mode="after")
    def picks_are_distinct(self):
        picks = self.picks()
        if len(set(picks)) != len(picks):
            raise ValueError("You cannot vote for the same movie multiple times")
        return self


class StatusUpdateRequest(BaseModel):
    status: CycleStatus


class ScheduleSettingsRequest(BaseModel):
    finish_by_time: str

    @field_validator("finish_by_time")
    @classmethod
    def normalize_finish_by(cls, v: str) -> str:
        return parse_finish_by(v).strftime("%H:%M")


class ScheduleOut(BaseModel):
    movie_id: UUID | None = None
    runtime_minutes: int
    start_time: datetime
    finish_time: datetime
    break_count: int
    break_total_minutes: int
    total_minutes: int
    reminders: list[datetime] = Field(default_factory=list)


class ScheduleCalculateRequest(BaseModel):
    runtime_minutes: int = Field(gt=0, le=1000)
    finish_by_time: str = "03:30"

    @field_validator("finish_by_time")
    @classmethod
    def normalize_finish_by(cls, v: str) -> str:
        return parse_finish_by(v).strftime("%H:%M")


class CandidateMovieIn(BaseModel):
    runtime_minutes: int | None = None
    nomination_streak: int = Field(default=0, ge=0)


class WinnerCalculateRequest(BaseModel):
    nominations: dict[str, list[str]] = Field(default_factory=dict)
    votes: dict[str, dict[str, str | None]] = Field(default_factory=dict)
    movies: dict[str, CandidateMovieIn] = Field(default_factory=dict)


class CandidateScoreOut(BaseModel):
    movie_id: str
    score: int
    raw_score: int
    boost: int
    vote_count: int
    runtime_minutes: int | None


class WinnerOut(BaseModel):
    movie_id: str
    score: int


class WinnerCalculateResponse(BaseModel):
    winner: WinnerOut | None
    ranking: list[CandidateScoreOut] = Field(default_factory=list)

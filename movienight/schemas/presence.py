from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HeartbeatRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=120)


class ActiveUserOut(BaseModel):
    user_id: str
    display_name: str
    last_seen_at: datetime

from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from movienight.db.base_class import Base


class SharedMovie(Base):
    __tablename__ = "shared_movies"

    # Same id as the library movie it was copied from. No FK: a shared copy
    # outlives removal from the owner's library.
    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True)

    original_owner_user_id: Mapped[str] = mapped_column(sa.String(128), nullable=False, index=True)
    catalog_id: Mapped[str] = mapped_column(sa.String(50), nullable=False)

    title: Mapped[str] = mapped_column(sa.String(300), nullable=False)
    poster_url: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    runtime_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    release_year: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    genres: Mapped[list] = mapped_column(sa.JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    nomination_streak: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0", default=0)

    shared_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.CheckConstraint("runtime_minutes > 0", name="ck_shared_movies_runtime"),
    )
